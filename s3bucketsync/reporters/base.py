"""Base reporter interface."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from s3bucketsync.models import PairOutcome, RunConfiguration, SyncPair
    from s3bucketsync.orchestrator import RunResult


class Reporter(ABC):
    """Abstract base class for sync event reporters.

    Events for different pairs may arrive from different threads when
    pairs run in parallel.
    """

    @abstractmethod
    def on_run_start(self, total_pairs: int, run_config: "RunConfiguration") -> None:
        """Called once before any pair is processed."""
        pass

    @abstractmethod
    def on_pair_start(self, pair: "SyncPair", index: Optional[int], total: int) -> None:
        """Called when processing begins for a pair.

        ``index`` is 1-based in sequential mode and None in parallel mode.
        """
        pass

    @abstractmethod
    def on_buckets_listed(self, pair: "SyncPair", source_count: int, destination_count: int) -> None:
        """Called after both providers have been listed."""
        pass

    @abstractmethod
    def on_bucket_start(self, pair: "SyncPair", bucket: str) -> None:
        """Called when an eligible bucket starts processing."""
        pass

    @abstractmethod
    def on_bucket_skipped(self, pair: "SyncPair", bucket: str, reason: str) -> None:
        """Called when a source bucket is excluded from processing."""
        pass

    @abstractmethod
    def on_bucket_created(self, pair: "SyncPair", bucket: str, dry_run: bool) -> None:
        """Called when a destination bucket was (or would be) created."""
        pass

    @abstractmethod
    def on_bucket_creation_failed(self, pair: "SyncPair", bucket: str, message: str) -> None:
        """Called when creating a destination bucket failed."""
        pass

    @abstractmethod
    def on_bucket_synced(self, pair: "SyncPair", bucket: str, dry_run: bool) -> None:
        """Called when a bucket sync succeeded."""
        pass

    @abstractmethod
    def on_bucket_sync_failed(self, pair: "SyncPair", bucket: str, message: str) -> None:
        """Called when a bucket sync failed."""
        pass

    @abstractmethod
    def on_pair_complete(self, outcome: "PairOutcome") -> None:
        """Called with the pair summary."""
        pass

    @abstractmethod
    def on_run_complete(self, result: "RunResult") -> None:
        """Called with the run summary after every pair has finished."""
        pass
