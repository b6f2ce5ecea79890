"""Command-line interface for the bucket sync tool.

Provides argument parsing and main entry point for running a sync
from the command line.
"""

import argparse
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from s3bucketsync import __version__
from s3bucketsync.config import Settings, load_settings
from s3bucketsync.errors import ConfigurationError
from s3bucketsync.models import RunConfiguration
from s3bucketsync.orchestrator import SyncOrchestrator
from s3bucketsync.reporters import ConsoleReporter, JsonReporter, Reporter

EPILOG = """\
examples:
  %(prog)s                            Sync all pairs
  %(prog)s --dry-run                  Preview all operations
  %(prog)s --pair hetzner1:scaleway1  Sync a specific pair
  %(prog)s --bucket my-bucket         Sync a specific bucket
  %(prog)s --parallel                 Run all pairs concurrently

configuration:
  Set in the environment or a .env file:
    SYNC_PAIRS          Comma-separated list of SOURCE:DEST pairs
    {NAME}_S3_ENDPOINT, {NAME}_S3_REGION,
    {NAME}_ACCESS_KEY, {NAME}_SECRET_KEY
                        Credentials for each provider named in SYNC_PAIRS
    EXCLUDE_BUCKETS     Bucket names to always skip
  or provide a JSON file with --config.
"""


class CompositeReporter(Reporter):
    """Reporter that delegates to multiple reporters.

    Allows using both ConsoleReporter and JsonReporter simultaneously.
    """

    def __init__(self, reporters: list[Reporter]):
        """Initialize with list of reporters.

        Args:
            reporters: List of reporters to delegate to
        """
        self._reporters = reporters

    def _fan_out(self, event: str, *args) -> None:
        for reporter in self._reporters:
            getattr(reporter, event)(*args)

    def on_run_start(self, total_pairs, run_config) -> None:
        self._fan_out("on_run_start", total_pairs, run_config)

    def on_pair_start(self, pair, index, total) -> None:
        self._fan_out("on_pair_start", pair, index, total)

    def on_buckets_listed(self, pair, source_count, destination_count) -> None:
        self._fan_out("on_buckets_listed", pair, source_count, destination_count)

    def on_bucket_start(self, pair, bucket) -> None:
        self._fan_out("on_bucket_start", pair, bucket)

    def on_bucket_skipped(self, pair, bucket, reason) -> None:
        self._fan_out("on_bucket_skipped", pair, bucket, reason)

    def on_bucket_created(self, pair, bucket, dry_run) -> None:
        self._fan_out("on_bucket_created", pair, bucket, dry_run)

    def on_bucket_creation_failed(self, pair, bucket, message) -> None:
        self._fan_out("on_bucket_creation_failed", pair, bucket, message)

    def on_bucket_synced(self, pair, bucket, dry_run) -> None:
        self._fan_out("on_bucket_synced", pair, bucket, dry_run)

    def on_bucket_sync_failed(self, pair, bucket, message) -> None:
        self._fan_out("on_bucket_sync_failed", pair, bucket, message)

    def on_pair_complete(self, outcome) -> None:
        self._fan_out("on_pair_complete", outcome)

    def on_run_complete(self, result) -> None:
        self._fan_out("on_run_complete", result)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="s3-bucket-sync",
        description="Sync buckets between S3-compatible storage providers",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview operations without making changes",
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run all sync pairs concurrently",
    )

    parser.add_argument(
        "--pair",
        metavar="SOURCE:DEST",
        help="Sync only a specific provider pair",
    )

    parser.add_argument(
        "--bucket",
        metavar="NAME",
        help="Sync only a specific bucket across all pairs",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show detailed output",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress per-bucket output, show only summaries",
    )

    parser.add_argument(
        "--exclude",
        metavar="NAME",
        action="append",
        default=[],
        help="Bucket name to skip (repeatable, adds to EXCLUDE_BUCKETS)",
    )

    parser.add_argument(
        "-c", "--config",
        default="config.json",
        help="Path to JSON configuration file (default: config.json)",
    )

    parser.add_argument(
        "--env-file",
        default=".env",
        metavar="PATH",
        help="Path to .env file (default: .env)",
    )

    parser.add_argument(
        "-j", "--json-output",
        metavar="PATH",
        help="Write JSON results to file",
    )

    parser.add_argument(
        "--github-actions",
        action="store_true",
        help="Enable GitHub Actions output mode",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any pair or bucket failed",
    )

    parser.add_argument(
        "--transfers",
        type=positive_int,
        default=4,
        metavar="N",
        help="Parallel object transfers per bucket (default: 4)",
    )

    parser.add_argument(
        "--checkers",
        type=positive_int,
        default=8,
        metavar="N",
        help="Parallel object checkers per bucket (default: 8)",
    )

    parser.add_argument(
        "--transfer-timeout",
        type=positive_float,
        metavar="SECONDS",
        help="Abort a single bucket transfer after this long",
    )

    parser.add_argument(
        "--run-timeout",
        type=positive_float,
        metavar="SECONDS",
        help="Stop starting new buckets after this long",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send package log records to stderr through Rich."""
    if verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger("s3bucketsync")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
        )
    )
    logger.setLevel(level)
    logger.propagate = False


def build_run_config(args: argparse.Namespace, settings: Settings) -> RunConfiguration:
    """Combine command-line arguments and settings into a RunConfiguration."""
    exclusions = tuple(settings.exclude_buckets) + tuple(args.exclude)
    run_config = RunConfiguration(
        dry_run=args.dry_run,
        parallel=args.parallel,
        pair_filter=args.pair,
        bucket_filter=args.bucket,
        exclude_buckets=exclusions,
        verbose=args.verbose,
        transfers=args.transfers,
        checkers=args.checkers,
        transfer_timeout=args.transfer_timeout,
        fail_on_error=args.strict,
    )
    return run_config.with_run_timeout(args.run_timeout)


def create_reporters(args: argparse.Namespace) -> list[Reporter]:
    """Create reporters based on command-line arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        List of configured reporters
    """
    reporters: list[Reporter] = [ConsoleReporter(quiet=args.quiet)]

    if args.json_output or args.github_actions:
        reporters.append(JsonReporter(
            output_path=args.json_output,
            github_output=args.github_actions,
        ))

    return reporters


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 when the run completed, 1 for failures with --strict,
        2 for configuration errors
    """
    args = parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        settings = load_settings(
            env_file=args.env_file,
            config_path=args.config,
            pair_override=args.pair,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    run_config = build_run_config(args, settings)

    reporters = create_reporters(args)
    if len(reporters) == 1:
        reporter = reporters[0]
    else:
        reporter = CompositeReporter(reporters)

    orchestrator = SyncOrchestrator(run_config, reporter=reporter)
    result = orchestrator.run(settings.pairs)

    if result.has_failures and run_config.fail_on_error:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
