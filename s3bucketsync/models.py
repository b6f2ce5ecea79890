"""Data models for the S3 bucket sync tool."""

import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Category of a pair- or bucket-level failure."""

    CONFIGURATION = "configuration"
    CREDENTIAL = "credential"
    LIST = "list"
    CREATION = "creation"
    TRANSFER = "transfer"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


# Fields that must be non-empty for a provider to be usable
REQUIRED_PROVIDER_FIELDS = (
    "endpoint_url",
    "region_name",
    "aws_access_key_id",
    "aws_secret_access_key",
)


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved endpoint and credentials for one named S3-compatible provider."""

    name: str
    endpoint_url: str = ""
    region_name: str = ""
    aws_access_key_id: str = field(default="", repr=False)
    aws_secret_access_key: str = field(default="", repr=False)
    addressing_style: str = "path"

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are empty."""
        return [f for f in REQUIRED_PROVIDER_FIELDS if not getattr(self, f)]

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()


@dataclass(frozen=True)
class SyncPair:
    """An ordered (source, destination) provider association."""

    source: ProviderConfig
    destination: ProviderConfig

    @property
    def pair_id(self) -> str:
        return f"{self.source.name}:{self.destination.name}"

    @property
    def label(self) -> str:
        return f"{self.source.name} → {self.destination.name}"


@dataclass
class BucketListing:
    """Result of listing a provider's buckets.

    An empty ``buckets`` list with no ``error`` means the provider has zero
    buckets. A set ``error`` means the listing could not be determined.
    """

    buckets: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ReconciliationPlan:
    """What one pair's reconciliation will do.

    ``to_sync`` keeps source-listing order; ``excluded`` lists buckets
    dropped by the exclusion list (for reporting only).
    """

    to_create: frozenset
    to_sync: tuple
    excluded: tuple = ()


@dataclass
class BucketOutcome:
    """Outcome of processing one bucket within a pair."""

    bucket: str
    created: bool = False
    synced: bool = False
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class PairOutcome:
    """Aggregated outcome for one sync pair.

    Counts are derived from ``per_bucket`` so they always agree with it.
    """

    pair_id: str
    label: str
    per_bucket: list[BucketOutcome] = field(default_factory=list)
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    duration_seconds: float = 0.0
    dry_run: bool = False

    @property
    def created_count(self) -> int:
        return sum(1 for b in self.per_bucket if b.created)

    @property
    def synced_count(self) -> int:
        return sum(1 for b in self.per_bucket if b.synced)

    @property
    def failed_count(self) -> int:
        return sum(1 for b in self.per_bucket if b.failed)

    @property
    def has_failures(self) -> bool:
        return self.error is not None or self.failed_count > 0

    def to_dict(self) -> dict:
        return {
            "pair_id": self.pair_id,
            "label": self.label,
            "created": self.created_count,
            "synced": self.synced_count,
            "failed": self.failed_count,
            "error": self.error.value if self.error else None,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
            "buckets": [
                {
                    "bucket": b.bucket,
                    "created": b.created,
                    "synced": b.synced,
                    "error": b.error.value if b.error else None,
                    "message": b.message,
                }
                for b in self.per_bucket
            ],
        }


@dataclass(frozen=True)
class TransferOptions:
    """Policy flags handed to the transfer engine for one bucket."""

    dry_run: bool = False
    update_only: bool = True
    transfers: int = 4
    checkers: int = 8
    verbose: bool = False
    timeout: Optional[float] = None


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable execution parameters threaded through a run."""

    dry_run: bool = False
    parallel: bool = False
    pair_filter: Optional[str] = None
    bucket_filter: Optional[str] = None
    exclude_buckets: tuple = ()
    verbose: bool = False
    transfers: int = 4
    checkers: int = 8
    transfer_timeout: Optional[float] = None
    # time.monotonic() value after which no further bucket is started
    deadline: Optional[float] = None
    recheck_on_create_failure: bool = True
    fail_on_error: bool = False

    def with_run_timeout(self, seconds: Optional[float]) -> "RunConfiguration":
        """Return a copy whose deadline is ``seconds`` from now."""
        if seconds is None:
            return self
        return replace(self, deadline=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def transfer_options(self) -> TransferOptions:
        timeout = self.transfer_timeout
        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        return TransferOptions(
            dry_run=self.dry_run,
            update_only=True,
            transfers=self.transfers,
            checkers=self.checkers,
            verbose=self.verbose,
            timeout=timeout,
        )

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "deadline"}
