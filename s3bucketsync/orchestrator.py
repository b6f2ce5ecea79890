"""Sync orchestrator.

Coordinates reconciliation across all sync pairs, managing:
- Sequential or parallel pair execution
- Containment of per-pair failures
- Reporter callbacks for progress
- The run-level result
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from s3bucketsync.models import ErrorKind, PairOutcome, RunConfiguration, SyncPair
from s3bucketsync.reconciler import BucketReconciler

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of syncing all pairs."""

    pairs: list[PairOutcome]
    total_duration: float
    dry_run: bool = False
    timestamp: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))

    @property
    def pairs_processed(self) -> int:
        return len(self.pairs)

    @property
    def has_failures(self) -> bool:
        """Check if any pair or bucket failed."""
        return any(p.has_failures for p in self.pairs)

    @property
    def created_count(self) -> int:
        return sum(p.created_count for p in self.pairs)

    @property
    def synced_count(self) -> int:
        return sum(p.synced_count for p in self.pairs)

    @property
    def failed_count(self) -> int:
        return sum(p.failed_count for p in self.pairs)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "dry_run": self.dry_run,
            "pairs": [p.to_dict() for p in self.pairs],
            "summary": {
                "pairs_processed": self.pairs_processed,
                "pairs_failed": sum(1 for p in self.pairs if p.has_failures),
                "buckets_created": self.created_count,
                "buckets_synced": self.synced_count,
                "buckets_failed": self.failed_count,
                "has_failures": self.has_failures,
                "duration_seconds": self.total_duration,
            },
        }


class SyncOrchestrator:
    """Runs a BucketReconciler for every pair.

    A failing pair never stops the others. In parallel mode each pair runs
    in its own worker thread and all of them are joined before the run
    result is produced.
    """

    def __init__(
        self,
        run_config: RunConfiguration,
        reporter: Optional[Any] = None,
        reconciler: Optional[BucketReconciler] = None,
    ):
        """Initialize the orchestrator.

        Args:
            run_config: Execution parameters for the run
            reporter: Optional reporter for progress callbacks
            reconciler: Reconciler to use (defaults to S3 + rclone)
        """
        self.run_config = run_config
        self.reporter = reporter
        self.reconciler = reconciler or BucketReconciler(run_config, reporter=reporter)

    def run(self, pairs: list[SyncPair]) -> RunResult:
        """Sync every pair.

        Returns:
            RunResult with one PairOutcome per pair, in input order
        """
        start_time = time.time()

        if self.reporter:
            self.reporter.on_run_start(len(pairs), self.run_config)

        if self.run_config.parallel and len(pairs) > 1:
            outcomes = self._run_parallel(pairs)
        else:
            outcomes = self._run_sequential(pairs)

        result = RunResult(
            pairs=outcomes,
            total_duration=time.time() - start_time,
            dry_run=self.run_config.dry_run,
        )

        if self.reporter:
            self.reporter.on_run_complete(result)

        return result

    def _run_sequential(self, pairs: list[SyncPair]) -> list[PairOutcome]:
        total = len(pairs)
        return [self._run_pair(pair, index, total) for index, pair in enumerate(pairs, start=1)]

    def _run_parallel(self, pairs: list[SyncPair]) -> list[PairOutcome]:
        total = len(pairs)
        with ThreadPoolExecutor(max_workers=total, thread_name_prefix="sync-pair") as executor:
            futures = [executor.submit(self._run_pair, pair, None, total) for pair in pairs]
            return [future.result() for future in futures]

    def _run_pair(self, pair: SyncPair, index: Optional[int], total: int) -> PairOutcome:
        if self.reporter:
            self.reporter.on_pair_start(pair, index, total)

        try:
            outcome = self.reconciler.reconcile(pair)
        except Exception as e:
            logger.exception("Unexpected error processing %s", pair.label)
            outcome = PairOutcome(
                pair_id=pair.pair_id,
                label=pair.label,
                error=ErrorKind.UNEXPECTED,
                error_message=str(e),
                dry_run=self.run_config.dry_run,
            )

        if self.reporter:
            self.reporter.on_pair_complete(outcome)

        return outcome
