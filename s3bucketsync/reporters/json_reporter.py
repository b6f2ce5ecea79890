"""JSON reporter for structured output and GitHub Actions integration.

Generates JSON output suitable for:
- Scheduled-run artifacts
- GitHub Actions workflow outputs
"""

import json
import os
from pathlib import Path
from typing import Optional

from s3bucketsync.models import PairOutcome, RunConfiguration, SyncPair
from s3bucketsync.orchestrator import RunResult
from s3bucketsync.reporters.base import Reporter


class JsonReporter(Reporter):
    """JSON reporter for structured output.

    All data is taken from the final RunResult; per-event callbacks are
    no-ops.

    Args:
        output_path: Optional file path to write JSON output
        github_output: If True, write to GITHUB_OUTPUT for Actions
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        github_output: bool = False,
    ):
        self.output_path = output_path
        self.github_output = github_output

    def on_run_start(self, total_pairs: int, run_config: RunConfiguration) -> None:
        pass

    def on_pair_start(self, pair: SyncPair, index: Optional[int], total: int) -> None:
        pass

    def on_buckets_listed(self, pair: SyncPair, source_count: int, destination_count: int) -> None:
        pass

    def on_bucket_start(self, pair: SyncPair, bucket: str) -> None:
        pass

    def on_bucket_skipped(self, pair: SyncPair, bucket: str, reason: str) -> None:
        pass

    def on_bucket_created(self, pair: SyncPair, bucket: str, dry_run: bool) -> None:
        pass

    def on_bucket_creation_failed(self, pair: SyncPair, bucket: str, message: str) -> None:
        pass

    def on_bucket_synced(self, pair: SyncPair, bucket: str, dry_run: bool) -> None:
        pass

    def on_bucket_sync_failed(self, pair: SyncPair, bucket: str, message: str) -> None:
        pass

    def on_pair_complete(self, outcome: PairOutcome) -> None:
        pass

    def on_run_complete(self, result: RunResult) -> dict:
        """Generates and outputs JSON data.

        Args:
            result: The finished run

        Returns:
            The generated JSON data as a dictionary
        """
        output = result.to_dict()

        if self.output_path:
            self._write_to_file(output)

        if self.github_output:
            self._write_github_output(output)

        return output

    def _write_to_file(self, output: dict) -> None:
        path = Path(self.output_path)

        # Create parent directories if needed
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2)

    def _write_github_output(self, output: dict) -> None:
        """Write to GitHub Actions output file.

        Args:
            output: The data to write
        """
        github_output_file = os.environ.get("GITHUB_OUTPUT")
        if not github_output_file:
            return

        summary = output["summary"]
        with open(github_output_file, "a", encoding="utf-8") as f:
            f.write(f"has_failures={str(summary['has_failures']).lower()}\n")
            f.write(f"pairs_processed={summary['pairs_processed']}\n")
            f.write(f"buckets_created={summary['buckets_created']}\n")
            f.write(f"buckets_synced={summary['buckets_synced']}\n")
            f.write(f"buckets_failed={summary['buckets_failed']}\n")

            # Write full JSON as multiline output
            f.write("results<<EOF\n")
            f.write(json.dumps(output))
            f.write("\nEOF\n")
