"""Bucket-level operations against one S3-compatible provider."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from s3bucketsync.models import BucketListing, ProviderConfig
from s3bucketsync.s3_client import build_s3_client

logger = logging.getLogger(__name__)

# Region that must not be sent as a LocationConstraint
DEFAULT_REGION = "us-east-1"

# botocore raises ValueError for malformed endpoint URLs
S3_ERRORS = (ClientError, BotoCoreError, ValueError)


@dataclass
class CreateResult:
    """Outcome of a create_bucket call."""

    created: bool
    message: Optional[str] = None


def describe_error(error: Exception) -> str:
    """Short human-readable description of a botocore error."""
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        code = err.get("Code", "Unknown")
        message = err.get("Message") or str(error)
        return f"{code}: {message}"
    return str(error)


class StorageClient(ABC):
    """Bucket capabilities for a single provider."""

    def __init__(self, provider: ProviderConfig):
        self.provider = provider

    @abstractmethod
    def list_buckets(self) -> BucketListing:
        """List bucket names. Failures are returned, never raised."""

    @abstractmethod
    def bucket_exists(self, name: str) -> bool:
        """Check existence. Any failure counts as not existing."""

    @abstractmethod
    def create_bucket(self, name: str, dry_run: bool = False) -> CreateResult:
        """Create a bucket, or only log the intent under dry-run."""


class S3StorageClient(StorageClient):
    """StorageClient backed by a boto3 S3 client."""

    def __init__(self, provider: ProviderConfig, s3_client: Any = None):
        super().__init__(provider)
        self._s3_client = s3_client

    @property
    def s3_client(self):
        # Built on first use; dry-run creation never needs a client
        if self._s3_client is None:
            self._s3_client = build_s3_client(self.provider)
        return self._s3_client

    def list_buckets(self) -> BucketListing:
        try:
            response = self.s3_client.list_buckets()
        except S3_ERRORS as e:
            message = describe_error(e)
            logger.debug("list_buckets failed for %s: %s", self.provider.name, message)
            return BucketListing(buckets=[], error=message)

        names = []
        for bucket in response.get("Buckets", []):
            name = bucket.get("Name")
            if name and name not in names:
                names.append(name)
        return BucketListing(buckets=names)

    def bucket_exists(self, name: str) -> bool:
        try:
            self.s3_client.head_bucket(Bucket=name)
        except S3_ERRORS as e:
            logger.debug("head_bucket %s on %s: %s", name, self.provider.name, describe_error(e))
            return False
        return True

    def create_bucket(self, name: str, dry_run: bool = False) -> CreateResult:
        if dry_run:
            logger.info("[DRY-RUN] Would create bucket %s on %s", name, self.provider.name)
            return CreateResult(created=True)

        kwargs: dict[str, Any] = {"Bucket": name}
        region = self.provider.region_name
        if region and region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}

        logger.info("Creating bucket %s on %s", name, self.provider.endpoint_url)
        try:
            self.s3_client.create_bucket(**kwargs)
        except S3_ERRORS as e:
            return CreateResult(created=False, message=describe_error(e))
        return CreateResult(created=True)
