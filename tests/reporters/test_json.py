"""Tests for JsonReporter.

Tests the JSON output reporter for GitHub Actions and data persistence.
"""

import json
from pathlib import Path

import pytest

from s3bucketsync.models import BucketOutcome, ErrorKind, PairOutcome
from s3bucketsync.orchestrator import RunResult
from s3bucketsync.reporters.base import Reporter
from s3bucketsync.reporters.json_reporter import JsonReporter


@pytest.fixture
def result() -> RunResult:
    return RunResult(
        pairs=[
            PairOutcome(
                "hetzner1:scaleway1",
                "hetzner1 → scaleway1",
                [
                    BucketOutcome("photos", created=True, synced=True),
                    BucketOutcome("logs", error=ErrorKind.TRANSFER, message="ERROR : reset"),
                ],
                duration_seconds=4.2,
            ),
            PairOutcome(
                "hetzner2:scaleway2",
                "hetzner2 → scaleway2",
                error=ErrorKind.LIST,
                error_message="InvalidAccessKeyId: bad key",
            ),
        ],
        total_duration=5.0,
    )


class TestJsonReporterInterface:
    """Tests that JsonReporter implements Reporter interface."""

    def test_inherits_from_reporter(self):
        assert isinstance(JsonReporter(), Reporter)


class TestJsonReporterOutput:
    """Tests for the JSON document."""

    def test_returns_document(self, result):
        output = JsonReporter().on_run_complete(result)

        assert output["summary"] == {
            "pairs_processed": 2,
            "pairs_failed": 2,
            "buckets_created": 1,
            "buckets_synced": 1,
            "buckets_failed": 1,
            "has_failures": True,
            "duration_seconds": 5.0,
        }
        assert output["pairs"][1]["error"] == "list"
        assert output["pairs"][1]["error_message"] == "InvalidAccessKeyId: bad key"
        assert "timestamp" in output

    def test_pairs_failed_counts_pairs_with_any_failure(self):
        result = RunResult(
            pairs=[
                PairOutcome("h1:s1", "h1 → s1", [BucketOutcome("a", synced=True)]),
                PairOutcome("h2:s2", "h2 → s2", [BucketOutcome("b", error=ErrorKind.CREATION)]),
            ],
            total_duration=1.0,
        )

        output = JsonReporter().on_run_complete(result)

        assert output["summary"]["pairs_failed"] == 1

    def test_writes_file(self, tmp_path: Path, result):
        output_path = tmp_path / "reports" / "sync.json"

        JsonReporter(output_path=str(output_path)).on_run_complete(result)

        data = json.loads(output_path.read_text())
        assert data["summary"]["pairs_processed"] == 2
        assert data["pairs"][0]["buckets"][1]["message"] == "ERROR : reset"

    def test_no_file_without_path(self, tmp_path: Path, result, monkeypatch):
        monkeypatch.chdir(tmp_path)

        JsonReporter().on_run_complete(result)

        assert list(tmp_path.iterdir()) == []


class TestJsonReporterGitHubOutput:
    """Tests for GITHUB_OUTPUT integration."""

    def test_appends_outputs(self, tmp_path: Path, result, monkeypatch):
        github_output = tmp_path / "github_output"
        github_output.write_text("existing=1\n")
        monkeypatch.setenv("GITHUB_OUTPUT", str(github_output))

        JsonReporter(github_output=True).on_run_complete(result)

        content = github_output.read_text()
        assert content.startswith("existing=1\n")
        assert "has_failures=true\n" in content
        assert "pairs_processed=2\n" in content
        assert "buckets_failed=1\n" in content
        assert "results<<EOF\n" in content
        assert content.endswith("\nEOF\n")

    def test_no_env_var_is_noop(self, result, monkeypatch):
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)

        output = JsonReporter(github_output=True).on_run_complete(result)

        assert output["summary"]["has_failures"] is True
