"""Shared fixtures and in-memory fakes for the storage and transfer layers."""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

import pytest

from s3bucketsync.models import (
    BucketListing,
    ProviderConfig,
    RunConfiguration,
    SyncPair,
    TransferOptions,
)
from s3bucketsync.reconciler import BucketReconciler
from s3bucketsync.storage import CreateResult, StorageClient
from s3bucketsync.transfer import TransferEngine, TransferResult


def make_provider(name: str, **overrides) -> ProviderConfig:
    """Create a fully populated provider config."""
    values = {
        "endpoint_url": f"https://{name}.example.com",
        "region_name": "eu-central",
        "aws_access_key_id": f"{name}-key",
        "aws_secret_access_key": f"{name}-secret",
    }
    values.update(overrides)
    return ProviderConfig(name=name, **values)


def make_pair(source: str = "hetzner1", destination: str = "scaleway1") -> SyncPair:
    return SyncPair(make_provider(source), make_provider(destination))


class FakeRemote:
    """Remote state of one provider."""

    def __init__(
        self,
        buckets=(),
        list_error: Optional[str] = None,
        create_failures=(),
    ):
        self.buckets = list(buckets)
        self.list_error = list_error
        self.create_failures = set(create_failures)
        self.calls: list[tuple] = []
        # Live create_bucket calls that reached the provider
        self.mutations: list[str] = []


class FakeStorageClient(StorageClient):
    """StorageClient backed by a FakeRemote."""

    def __init__(self, provider: ProviderConfig, remote: FakeRemote):
        super().__init__(provider)
        self.remote = remote

    def list_buckets(self) -> BucketListing:
        self.remote.calls.append(("list_buckets",))
        if self.remote.list_error:
            return BucketListing(buckets=[], error=self.remote.list_error)
        return BucketListing(buckets=list(self.remote.buckets))

    def bucket_exists(self, name: str) -> bool:
        self.remote.calls.append(("bucket_exists", name))
        return name in self.remote.buckets

    def create_bucket(self, name: str, dry_run: bool = False) -> CreateResult:
        self.remote.calls.append(("create_bucket", name, dry_run))
        if dry_run:
            return CreateResult(created=True)
        self.remote.mutations.append(name)
        if name in self.remote.create_failures:
            return CreateResult(created=False, message="AccessDenied: Access Denied")
        self.remote.buckets.append(name)
        return CreateResult(created=True)


class FakeTransferEngine(TransferEngine):
    """Records sync calls; fails for buckets in ``failures``."""

    def __init__(self, pair: SyncPair, failures: set):
        self.pair = pair
        self.failures = failures
        self.calls: list[tuple[str, str, TransferOptions]] = []
        self.released = False

    def sync(self, source_location, destination_location, options) -> TransferResult:
        self.calls.append((source_location, destination_location, options))
        bucket = source_location.split(":", 1)[1]
        if bucket in self.failures:
            return TransferResult(ok=False, returncode=1, message="ERROR : connection reset")
        return TransferResult(ok=True, returncode=0)


class FakeWorld:
    """Providers and transfer engines shared by one test."""

    def __init__(self):
        self.remotes: dict[str, FakeRemote] = {}
        self.engines: list[FakeTransferEngine] = []
        self.transfer_failures: set[str] = set()
        self._lock = threading.Lock()

    def remote(self, name: str, buckets=(), **kwargs) -> FakeRemote:
        self.remotes[name] = FakeRemote(buckets, **kwargs)
        return self.remotes[name]

    def client_factory(self, provider: ProviderConfig) -> FakeStorageClient:
        with self._lock:
            remote = self.remotes.setdefault(provider.name, FakeRemote())
        return FakeStorageClient(provider, remote)

    @contextmanager
    def engine_factory(self, pair: SyncPair):
        engine = FakeTransferEngine(pair, self.transfer_failures)
        with self._lock:
            self.engines.append(engine)
        try:
            yield engine
        finally:
            engine.released = True

    @property
    def sync_calls(self) -> list[tuple[str, str, TransferOptions]]:
        return [call for engine in self.engines for call in engine.calls]

    @property
    def synced_buckets(self) -> list[str]:
        return [src.split(":", 1)[1] for src, _, _ in self.sync_calls]

    def reconciler(self, reporter=None, **run_kwargs) -> BucketReconciler:
        return BucketReconciler(
            RunConfiguration(**run_kwargs),
            reporter=reporter,
            client_factory=self.client_factory,
            engine_factory=self.engine_factory,
        )


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def pair() -> SyncPair:
    return make_pair()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handlers installed by cli.configure_logging."""
    logger = logging.getLogger("s3bucketsync")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
