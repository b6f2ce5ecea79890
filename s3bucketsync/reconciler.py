"""Per-pair bucket reconciliation.

For one (source, destination) pair:
- List buckets on both providers
- Work out which eligible source buckets are missing on the destination
- Create the missing buckets
- Hand every eligible bucket to the transfer engine

Failures are contained: a bucket failure never stops the pair, and a
pair-level failure (credentials, source listing) is returned as part of
the PairOutcome instead of being raised.
"""

import logging
import re
import time
from typing import Any, Callable, ContextManager, Iterable, Optional

from s3bucketsync.errors import (
    CreationError,
    CredentialError,
    DeadlineExceeded,
    ListError,
    SyncError,
    TransferError,
)
from s3bucketsync.models import (
    BucketOutcome,
    ErrorKind,
    PairOutcome,
    ProviderConfig,
    ReconciliationPlan,
    RunConfiguration,
    SyncPair,
)
from s3bucketsync.storage import S3StorageClient, StorageClient
from s3bucketsync.transfer import TransferEngine, rclone_engine

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ProviderConfig], StorageClient]
EngineFactory = Callable[[SyncPair], ContextManager[TransferEngine]]


def is_excluded(bucket: str, exclusions: Iterable[str]) -> bool:
    """Check whether ``bucket`` appears as a whole word in any exclusion entry."""
    pattern = re.compile(r"\b" + re.escape(bucket) + r"\b")
    return any(pattern.search(entry) for entry in exclusions)


def build_plan(
    source_buckets: Iterable[str],
    destination_buckets: Iterable[str],
    run_config: RunConfiguration,
    virtually_created: Iterable[str] = (),
) -> ReconciliationPlan:
    """Compute which buckets to create and which to sync.

    Args:
        source_buckets: Source bucket names in listing order.
        destination_buckets: Bucket names already on the destination.
        run_config: Supplies the bucket filter and exclusion list.
        virtually_created: Buckets already "created" by a dry-run.

    Returns:
        ReconciliationPlan where ``to_sync`` is every eligible source bucket
        in listing order and ``to_create`` is the eligible buckets absent
        from the destination.
    """
    to_sync: list[str] = []
    excluded: list[str] = []
    seen = set()

    for bucket in source_buckets:
        if bucket in seen:
            continue
        seen.add(bucket)

        if run_config.bucket_filter and bucket != run_config.bucket_filter:
            continue
        if is_excluded(bucket, run_config.exclude_buckets):
            excluded.append(bucket)
            continue
        to_sync.append(bucket)

    existing = set(destination_buckets) | set(virtually_created)
    return ReconciliationPlan(
        to_create=frozenset(b for b in to_sync if b not in existing),
        to_sync=tuple(to_sync),
        excluded=tuple(excluded),
    )


class BucketReconciler:
    """Reconciles the buckets of one sync pair.

    A reconciler keeps no state between ``reconcile`` calls, so one
    instance can serve several pairs running in parallel.
    """

    def __init__(
        self,
        run_config: RunConfiguration,
        reporter: Optional[Any] = None,
        client_factory: ClientFactory = S3StorageClient,
        engine_factory: EngineFactory = rclone_engine,
    ):
        """Initialize the reconciler.

        Args:
            run_config: Execution parameters for the run
            reporter: Optional reporter for progress callbacks
            client_factory: Builds a StorageClient for a provider
            engine_factory: Context manager factory yielding a pair-scoped
                            TransferEngine
        """
        self.run_config = run_config
        self.reporter = reporter
        self.client_factory = client_factory
        self.engine_factory = engine_factory

    def _emit(self, event: str, *args) -> None:
        if self.reporter:
            getattr(self.reporter, event)(*args)

    def reconcile(self, pair: SyncPair) -> PairOutcome:
        """Reconcile one pair and return its outcome."""
        start_time = time.time()
        outcome = PairOutcome(
            pair_id=pair.pair_id,
            label=pair.label,
            dry_run=self.run_config.dry_run,
        )

        try:
            self._reconcile(pair, outcome)
        except SyncError as e:
            logger.error("%s: %s", pair.label, e)
            outcome.error = e.kind
            outcome.error_message = str(e)

        outcome.duration_seconds = time.time() - start_time
        return outcome

    def _reconcile(self, pair: SyncPair, outcome: PairOutcome) -> None:
        validate_pair(pair)

        source_client = self.client_factory(pair.source)
        dest_client = self.client_factory(pair.destination)

        source_listing = source_client.list_buckets()
        if not source_listing.ok:
            raise ListError(
                f"Could not list buckets on {pair.source.name}: {source_listing.error}"
            )

        dest_listing = dest_client.list_buckets()
        if not dest_listing.ok:
            logger.warning(
                "Could not list buckets on %s, treating destination as empty: %s",
                pair.destination.name,
                dest_listing.error,
            )
        destination = set(dest_listing.buckets)

        self._emit(
            "on_buckets_listed",
            pair,
            len(source_listing.buckets),
            len(dest_listing.buckets),
        )

        if not source_listing.buckets:
            logger.info("No buckets found on source provider: %s", pair.source.name)
            return

        plan = build_plan(source_listing.buckets, destination, self.run_config)
        for bucket in plan.excluded:
            self._emit("on_bucket_skipped", pair, bucket, "excluded")

        if not plan.to_sync:
            return
        logger.info(
            "%s: %d bucket(s) to sync, %d missing on destination",
            pair.label,
            len(plan.to_sync),
            len(plan.to_create),
        )

        # Dry-run only: buckets this pair has pretended to create
        virtually_created: set[str] = set()

        with self.engine_factory(pair) as engine:
            for bucket in plan.to_sync:
                outcome.per_bucket.append(
                    self._process_bucket(pair, bucket, destination, virtually_created, dest_client, engine)
                )

    def _process_bucket(
        self,
        pair: SyncPair,
        bucket: str,
        destination: set[str],
        virtually_created: set[str],
        dest_client: StorageClient,
        engine: TransferEngine,
    ) -> BucketOutcome:
        result = BucketOutcome(bucket=bucket)

        if self.run_config.expired:
            error = DeadlineExceeded("Run deadline exceeded before bucket was processed")
            self._emit("on_bucket_skipped", pair, bucket, str(error))
            result.error = error.kind
            result.message = str(error)
            return result

        self._emit("on_bucket_start", pair, bucket)

        try:
            if not self._exists(bucket, destination, virtually_created):
                result.created = self._create(pair, bucket, dest_client, virtually_created)
            self._sync(pair, bucket, engine)
            result.synced = True
        except SyncError as e:
            result.error = e.kind
            result.message = str(e)
        except Exception as e:
            logger.exception("Unexpected error processing bucket %s", bucket)
            result.error = ErrorKind.UNEXPECTED
            result.message = str(e)

        return result

    def _exists(self, bucket: str, destination: set[str], virtually_created: set[str]) -> bool:
        if self.run_config.dry_run and bucket in virtually_created:
            return True
        return bucket in destination

    def _create(
        self,
        pair: SyncPair,
        bucket: str,
        dest_client: StorageClient,
        virtually_created: set[str],
    ) -> bool:
        """Create ``bucket`` on the destination.

        Returns:
            True if the bucket was (or, under dry-run, would be) created,
            False if it turned out to exist already.

        Raises:
            CreationError: If the bucket could not be created.
        """
        dry_run = self.run_config.dry_run
        logger.info("Bucket %s does not exist on %s", bucket, pair.destination.name)

        result = dest_client.create_bucket(bucket, dry_run=dry_run)
        if result.created:
            if dry_run:
                virtually_created.add(bucket)
            self._emit("on_bucket_created", pair, bucket, dry_run)
            return True

        if not dry_run and self.run_config.recheck_on_create_failure:
            if dest_client.bucket_exists(bucket):
                logger.info(
                    "Bucket %s already exists on %s, continuing with sync",
                    bucket,
                    pair.destination.name,
                )
                return False

        message = result.message or "bucket creation failed"
        self._emit("on_bucket_creation_failed", pair, bucket, message)
        raise CreationError(f"Failed to create bucket {bucket}: {message}")

    def _sync(self, pair: SyncPair, bucket: str, engine: TransferEngine) -> None:
        options = self.run_config.transfer_options()
        if options.timeout is not None and options.timeout <= 0:
            error = DeadlineExceeded("Run deadline exceeded before transfer started")
            self._emit("on_bucket_skipped", pair, bucket, str(error))
            raise error

        source_location, destination_location = engine.locations(bucket)

        result = engine.sync(source_location, destination_location, options)
        if result.ok:
            self._emit("on_bucket_synced", pair, bucket, options.dry_run)
            return

        message = result.message or "transfer failed"
        self._emit("on_bucket_sync_failed", pair, bucket, message)
        raise TransferError(f"Failed to sync bucket {bucket}: {message}")


def validate_pair(pair: SyncPair) -> None:
    """Check that both providers of a pair are fully configured.

    Raises:
        CredentialError: Naming the provider and its missing fields.
    """
    for role, provider in (("source", pair.source), ("destination", pair.destination)):
        missing = provider.missing_fields()
        if missing:
            raise CredentialError(
                f"Missing {role} credentials for provider {provider.name}: {', '.join(missing)}"
            )
