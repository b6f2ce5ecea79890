"""S3 client factory for the bucket sync tool.

Creates boto3 S3 clients configured for each provider, with the correct
endpoint, credentials, region, and addressing style.

Timeouts and retry mode are set here so that a stalled provider cannot
hang a pair forever; any retrying stays inside botocore.
"""

import boto3
from botocore.client import Config

from s3bucketsync.models import ProviderConfig

CONNECT_TIMEOUT = 10
READ_TIMEOUT = 60
MAX_ATTEMPTS = 3


def build_s3_client(config: ProviderConfig):
    """Build a boto3 S3 client for the given provider configuration.

    Args:
        config: Provider configuration containing endpoint, credentials,
               region, and addressing style.

    Returns:
        A boto3 S3 client configured for the provider.
    """
    boto_config = Config(
        signature_version="s3v4",
        s3={"addressing_style": config.addressing_style},
        connect_timeout=CONNECT_TIMEOUT,
        read_timeout=READ_TIMEOUT,
        retries={"max_attempts": MAX_ATTEMPTS, "mode": "standard"},
    )

    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.aws_access_key_id,
        aws_secret_access_key=config.aws_secret_access_key,
        region_name=config.region_name,
        config=boto_config,
    )
