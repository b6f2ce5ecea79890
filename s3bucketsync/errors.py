"""Exception hierarchy for the bucket sync tool.

Only ConfigurationError escapes the core. The other errors are raised and
caught inside the reconciler, where they become pair- or bucket-level
outcome values.
"""

from s3bucketsync.models import ErrorKind


class SyncError(Exception):
    """Base class for all sync errors."""

    kind = ErrorKind.UNEXPECTED


class ConfigurationError(SyncError):
    """No usable configuration, pair list, or executable pair."""

    kind = ErrorKind.CONFIGURATION


class CredentialError(SyncError):
    """A pair references a provider with missing fields."""

    kind = ErrorKind.CREDENTIAL


class ListError(SyncError):
    """Source buckets could not be enumerated."""

    kind = ErrorKind.LIST


class CreationError(SyncError):
    """A destination bucket could not be created."""

    kind = ErrorKind.CREATION


class TransferError(SyncError):
    """The transfer engine failed for one bucket."""

    kind = ErrorKind.TRANSFER


class DeadlineExceeded(SyncError):
    """The run deadline passed before a bucket could be processed."""

    kind = ErrorKind.TIMEOUT
