"""Console reporter using Rich library for formatted CLI output.

Provides colorful, formatted output during a sync run including:
- Pair headers and progress
- Per-bucket create/sync indicators
- Per-pair summaries and a final summary table
"""

import threading
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from s3bucketsync.models import PairOutcome, RunConfiguration, SyncPair
from s3bucketsync.orchestrator import RunResult
from s3bucketsync.reporters.base import Reporter


class ConsoleReporter(Reporter):
    """Rich-based console reporter for CLI output.

    Every event is printed while holding a lock, so lines from pairs
    running in parallel never interleave. In parallel mode each line is
    prefixed with the pair it belongs to.

    Args:
        quiet: If True, suppress per-bucket output (only show summaries)
        console: Console to print to (defaults to stdout)
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        """Initialize the console reporter.

        Args:
            quiet: Suppress per-bucket output if True
            console: Optional Rich console
        """
        # Use legacy_windows=True for ASCII-safe output on Windows consoles
        self.console = console or Console(legacy_windows=True)
        self.quiet = quiet
        self.parallel = False
        self.dry_run = False
        self._lock = threading.Lock()

    def _print(self, *lines) -> None:
        with self._lock:
            for line in lines:
                self.console.print(line)

    def _prefix(self, pair: SyncPair) -> str:
        return f"[dim]{escape(f'[{pair.pair_id}]')}[/dim] " if self.parallel else ""

    def _bucket_line(self, pair: SyncPair, text: str) -> None:
        if not self.quiet:
            self._print(f"{self._prefix(pair)}  {text}")

    def on_run_start(self, total_pairs: int, run_config: RunConfiguration) -> None:
        self.parallel = run_config.parallel
        self.dry_run = run_config.dry_run

        lines = [Rule("[bold cyan]S3 Multi-Provider Bucket Sync[/bold cyan]", style="cyan", characters="=")]
        if run_config.dry_run:
            lines.append("[yellow]Running in DRY-RUN mode - no changes will be made[/yellow]")
        if run_config.pair_filter:
            lines.append(f"[yellow]Processing only: {escape(run_config.pair_filter)}[/yellow]")
        if run_config.bucket_filter:
            lines.append(f"[yellow]Processing only bucket: {escape(run_config.bucket_filter)}[/yellow]")
        lines.append(f"[cyan]Processing {total_pairs} sync pair(s)...[/cyan]")
        if run_config.parallel:
            lines.append("[yellow]Running in parallel mode[/yellow]")
        self._print(*lines)

    def on_pair_start(self, pair: SyncPair, index: Optional[int], total: int) -> None:
        """Displays a header with the pair label."""
        counter = f"[{index}/{total}] " if index is not None else ""
        self._print(
            "",
            Rule(f"[bold yellow]{counter}Processing: {escape(pair.label)}[/bold yellow]", style="yellow", characters="-"),
        )

    def on_buckets_listed(self, pair: SyncPair, source_count: int, destination_count: int) -> None:
        if self.quiet:
            return
        prefix = self._prefix(pair)
        self._print(
            f"{prefix}[green]Source buckets: {source_count} found[/green]",
            f"{prefix}[green]Destination buckets: {destination_count} found[/green]",
        )

    def on_bucket_start(self, pair: SyncPair, bucket: str) -> None:
        if not self.quiet:
            self._print(f"{self._prefix(pair)}[bold]Bucket: {escape(bucket)}[/bold]")

    def on_bucket_skipped(self, pair: SyncPair, bucket: str, reason: str) -> None:
        self._bucket_line(pair, f"[yellow]Skipping bucket {escape(bucket)} ({escape(reason)})[/yellow]")

    def on_bucket_created(self, pair: SyncPair, bucket: str, dry_run: bool) -> None:
        if dry_run:
            self._bucket_line(pair, f"[blue][DRY-RUN] Would create bucket: {escape(bucket)}[/blue]")
        else:
            self._bucket_line(pair, f"[green][OK] Created bucket: {escape(bucket)}[/green]")

    def on_bucket_creation_failed(self, pair: SyncPair, bucket: str, message: str) -> None:
        # Failures are shown even in quiet mode
        self._print(
            f"{self._prefix(pair)}  [red][FAIL] Failed to create bucket: {escape(bucket)}[/red]",
            f"{self._prefix(pair)}     [dim]{escape(message)}[/dim]",
        )

    def on_bucket_synced(self, pair: SyncPair, bucket: str, dry_run: bool) -> None:
        if dry_run:
            self._bucket_line(pair, f"[blue][DRY-RUN] Would sync: {escape(bucket)}[/blue]")
        else:
            self._bucket_line(pair, f"[green][OK] Synced: {escape(bucket)}[/green]")

    def on_bucket_sync_failed(self, pair: SyncPair, bucket: str, message: str) -> None:
        self._print(
            f"{self._prefix(pair)}  [red][FAIL] Failed to sync: {escape(bucket)}[/red]",
            f"{self._prefix(pair)}     [dim]{escape(message)}[/dim]",
        )

    def on_pair_complete(self, outcome: PairOutcome) -> None:
        """Displays the pair summary."""
        lines = ["", f"[bold]Summary for {escape(outcome.label)}:[/bold]"]

        if outcome.error:
            lines.append(f"  [bold red]Skipped ({outcome.error.value} error)[/bold red]")
            if outcome.error_message:
                lines.append(f"   [dim red]{escape(outcome.error_message)}[/dim red]")
        elif outcome.dry_run:
            lines.append(f"  [blue][DRY-RUN] Would create: {outcome.created_count} bucket(s)[/blue]")
            lines.append(f"  [blue][DRY-RUN] Would sync: {outcome.synced_count} bucket(s)[/blue]")
        else:
            lines.append(f"  [green]Buckets created: {outcome.created_count}[/green]")
            lines.append(f"  [green]Buckets synced: {outcome.synced_count}[/green]")

        if outcome.failed_count > 0:
            lines.append(f"  [red]Failed operations: {outcome.failed_count}[/red]")

        if outcome.duration_seconds > 0:
            lines.append(f"  [dim]Took {outcome.duration_seconds:.1f}s[/dim]")

        self._print(*lines)

    def on_run_complete(self, result: RunResult) -> None:
        """Displays a summary table with one row per pair."""
        if not result.pairs:
            self._print("[yellow]No pairs were processed.[/yellow]")
            return

        # Create summary table with ASCII-safe box drawing
        table = Table(
            title="",
            show_header=True,
            header_style="bold magenta",
            border_style="dim",
            box=box.ASCII,
        )
        table.add_column("Pair", style="cyan", no_wrap=True)
        table.add_column("Would create" if result.dry_run else "Created", justify="right")
        table.add_column("Would sync" if result.dry_run else "Synced", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Status", justify="center", no_wrap=True)

        for outcome in result.pairs:
            if outcome.error:
                status = f"[yellow]{outcome.error.value.upper()}[/yellow]"
            elif outcome.failed_count:
                status = "[red]FAIL[/red]"
            else:
                status = "[green]OK[/green]"

            failed = str(outcome.failed_count)
            if outcome.failed_count:
                failed = f"[red]{failed}[/red]"

            table.add_row(
                escape(outcome.label),
                str(outcome.created_count),
                str(outcome.synced_count),
                failed,
                status,
            )

        if result.has_failures:
            footer = Rule("[bold red]Sync Complete (with failures)[/bold red]", style="red", characters="=")
        else:
            footer = Rule("[bold green]Sync Complete![/bold green]", style="green", characters="=")

        self._print(
            "",
            Rule("[bold]Sync Summary[/bold]", style="magenta", characters="-"),
            table,
            f"Pairs processed: {result.pairs_processed} in {result.total_duration:.1f}s",
            footer,
        )
