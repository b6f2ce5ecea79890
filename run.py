#!/usr/bin/env python3
"""
S3 Multi-Provider Bucket Sync

Run this script to sync buckets between S3-compatible storage providers.

Usage:
    python run.py                             # Sync all configured pairs
    python run.py --dry-run                   # Preview all operations
    python run.py --pair hetzner1:scaleway1   # Sync a specific pair
    python run.py --bucket my-bucket          # Sync a specific bucket
    python run.py --parallel                  # Run all pairs concurrently
    python run.py -j results.json             # Output JSON results
    python run.py --github-actions            # GitHub Actions mode
"""

import sys
from s3bucketsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
