"""Tests for CLI entry point.

Tests the command-line interface and argument parsing.
"""

import logging
from unittest.mock import Mock, patch

import pytest

from conftest import make_pair
from s3bucketsync.cli import (
    CompositeReporter,
    build_run_config,
    configure_logging,
    create_reporters,
    main,
    parse_args,
)
from s3bucketsync.config import Settings
from s3bucketsync.errors import ConfigurationError
from s3bucketsync.models import BucketOutcome, ErrorKind, PairOutcome
from s3bucketsync.orchestrator import RunResult
from s3bucketsync.reporters import ConsoleReporter, JsonReporter


class TestParseArgs:
    """Tests for argument parsing."""

    def test_default_args(self):
        """Should have sensible defaults."""
        args = parse_args([])

        assert args.dry_run is False
        assert args.parallel is False
        assert args.pair is None
        assert args.bucket is None
        assert args.verbose is False
        assert args.quiet is False
        assert args.exclude == []
        assert args.config == "config.json"
        assert args.env_file == ".env"
        assert args.json_output is None
        assert args.strict is False
        assert args.transfers == 4
        assert args.checkers == 8
        assert args.transfer_timeout is None
        assert args.run_timeout is None

    def test_run_flags(self):
        args = parse_args([
            "--dry-run",
            "--parallel",
            "--pair", "hetzner1:scaleway1",
            "--bucket", "photos",
            "-v",
        ])

        assert args.dry_run is True
        assert args.parallel is True
        assert args.pair == "hetzner1:scaleway1"
        assert args.bucket == "photos"
        assert args.verbose is True

    def test_exclude_repeatable(self):
        args = parse_args(["--exclude", "scratch", "--exclude", "tmp"])
        assert args.exclude == ["scratch", "tmp"]

    def test_output_flags(self):
        args = parse_args(["-q", "-j", "out.json", "--github-actions", "--strict"])

        assert args.quiet is True
        assert args.json_output == "out.json"
        assert args.github_actions is True
        assert args.strict is True

    def test_timeouts(self):
        args = parse_args(["--transfer-timeout", "90", "--run-timeout", "3600"])

        assert args.transfer_timeout == 90.0
        assert args.run_timeout == 3600.0

    @pytest.mark.parametrize("argv", [
        ["--unknown"],
        ["--transfers", "0"],
        ["--run-timeout", "-1"],
    ])
    def test_invalid_args_exit_with_usage_error(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(argv)
        assert exc_info.value.code == 2

    def test_help_exits_cleanly(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--help"])

        assert exc_info.value.code == 0
        assert "SYNC_PAIRS" in capsys.readouterr().out


class TestBuildRunConfig:
    """Tests for build_run_config function."""

    def test_merges_exclusions(self):
        args = parse_args(["--exclude", "tmp", "--strict"])
        settings = Settings(pairs=[], exclude_buckets=("scratch",))

        run_config = build_run_config(args, settings)

        assert run_config.exclude_buckets == ("scratch", "tmp")
        assert run_config.fail_on_error is True
        assert run_config.deadline is None

    def test_run_timeout_sets_deadline(self):
        args = parse_args(["--run-timeout", "60", "--transfer-timeout", "30"])

        run_config = build_run_config(args, Settings(pairs=[]))

        assert run_config.deadline is not None
        assert run_config.transfer_timeout == 30.0


class TestCreateReporters:
    """Tests for reporter creation."""

    def test_console_only_by_default(self):
        reporters = create_reporters(parse_args([]))

        assert len(reporters) == 1
        assert isinstance(reporters[0], ConsoleReporter)

    def test_quiet_passed_through(self):
        reporters = create_reporters(parse_args(["-q"]))
        assert reporters[0].quiet is True

    def test_json_reporter_added(self):
        reporters = create_reporters(parse_args(["-j", "out.json"]))

        assert isinstance(reporters[1], JsonReporter)
        assert reporters[1].output_path == "out.json"

    def test_github_actions_adds_json_reporter(self):
        reporters = create_reporters(parse_args(["--github-actions"]))

        assert reporters[1].github_output is True


class TestCompositeReporter:
    """Tests for CompositeReporter."""

    def test_fans_out_every_event(self):
        first, second = Mock(), Mock()
        composite = CompositeReporter([first, second])
        pair = make_pair()

        composite.on_pair_start(pair, 1, 2)
        composite.on_bucket_synced(pair, "photos", False)

        for reporter in (first, second):
            reporter.on_pair_start.assert_called_once_with(pair, 1, 2)
            reporter.on_bucket_synced.assert_called_once_with(pair, "photos", False)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.mark.parametrize("verbose,quiet,level", [
        (False, False, logging.WARNING),
        (True, False, logging.INFO),
        (False, True, logging.ERROR),
    ])
    def test_levels(self, verbose, quiet, level):
        configure_logging(verbose=verbose, quiet=quiet)

        logger = logging.getLogger("s3bucketsync")
        assert logger.level == level
        assert len(logger.handlers) == 1

    def test_repeated_calls_do_not_stack_handlers(self):
        configure_logging()
        configure_logging()

        assert len(logging.getLogger("s3bucketsync").handlers) == 1


class TestMain:
    """Tests for main entry point."""

    @pytest.fixture(autouse=True)
    def _no_logging_setup(self):
        with patch("s3bucketsync.cli.configure_logging"):
            yield

    @pytest.fixture
    def settings(self) -> Settings:
        return Settings(pairs=[make_pair()], exclude_buckets=("scratch",))

    def _result(self, failed: bool) -> RunResult:
        bucket = BucketOutcome("a", error=ErrorKind.TRANSFER) if failed else BucketOutcome("a", synced=True)
        return RunResult(pairs=[PairOutcome("hetzner1:scaleway1", "hetzner1 → scaleway1", [bucket])], total_duration=1.0)

    @patch("s3bucketsync.cli.load_settings")
    def test_configuration_error_exits_2(self, mock_load, capsys):
        mock_load.side_effect = ConfigurationError("SYNC_PAIRS is not defined")

        exit_code = main([])

        assert exit_code == 2
        assert "Configuration error: SYNC_PAIRS is not defined" in capsys.readouterr().err

    @patch("s3bucketsync.cli.SyncOrchestrator")
    @patch("s3bucketsync.cli.load_settings")
    def test_successful_run_exits_0(self, mock_load, mock_orchestrator, settings):
        mock_load.return_value = settings
        mock_orchestrator.return_value.run.return_value = self._result(failed=False)

        assert main(["--pair", "hetzner1:scaleway1"]) == 0

        mock_load.assert_called_once_with(
            env_file=".env",
            config_path="config.json",
            pair_override="hetzner1:scaleway1",
        )
        mock_orchestrator.return_value.run.assert_called_once_with(settings.pairs)

    @patch("s3bucketsync.cli.SyncOrchestrator")
    @patch("s3bucketsync.cli.load_settings")
    def test_failures_exit_0_by_default(self, mock_load, mock_orchestrator, settings):
        mock_load.return_value = settings
        mock_orchestrator.return_value.run.return_value = self._result(failed=True)

        assert main([]) == 0

    @patch("s3bucketsync.cli.SyncOrchestrator")
    @patch("s3bucketsync.cli.load_settings")
    def test_failures_exit_1_with_strict(self, mock_load, mock_orchestrator, settings):
        mock_load.return_value = settings
        mock_orchestrator.return_value.run.return_value = self._result(failed=True)

        assert main(["--strict"]) == 1

    @patch("s3bucketsync.cli.SyncOrchestrator")
    @patch("s3bucketsync.cli.load_settings")
    def test_run_config_passed_to_orchestrator(self, mock_load, mock_orchestrator, settings):
        mock_load.return_value = settings
        mock_orchestrator.return_value.run.return_value = self._result(failed=False)

        main(["--dry-run", "--parallel", "--exclude", "tmp"])

        run_config = mock_orchestrator.call_args.args[0]
        assert run_config.dry_run is True
        assert run_config.parallel is True
        assert run_config.exclude_buckets == ("scratch", "tmp")

    @patch("s3bucketsync.cli.SyncOrchestrator")
    @patch("s3bucketsync.cli.load_settings")
    def test_composite_reporter_with_json(self, mock_load, mock_orchestrator, settings, tmp_path):
        mock_load.return_value = settings
        mock_orchestrator.return_value.run.return_value = self._result(failed=False)

        main(["-j", str(tmp_path / "out.json")])

        reporter = mock_orchestrator.call_args.kwargs["reporter"]
        assert isinstance(reporter, CompositeReporter)

    @patch("s3bucketsync.cli.load_settings")
    def test_help_does_not_load_settings(self, mock_load):
        with pytest.raises(SystemExit):
            main(["--help"])

        mock_load.assert_not_called()
