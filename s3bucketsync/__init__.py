"""S3 Multi-Provider Bucket Sync.

One-way mirroring of buckets from a source S3-compatible provider to a
destination provider: missing buckets are created and missing or changed
objects are copied.
"""

__version__ = "1.0.0"

from s3bucketsync.cli import main

__all__ = ["main", "__version__"]
