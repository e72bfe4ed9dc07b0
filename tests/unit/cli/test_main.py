"""Tests for llmsync.cli.main."""

from unittest.mock import patch

import pytest

from llmsync.cli.main import _create_parser, _get_summarizer, main
from llmsync.core import RunOutcome, SyncRun, SyncState
from llmsync.summarize import MarkdownSummarizer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("LLMSYNC_SOURCE_DIR", "LLMSYNC_DERIVED_DIR", "LLMSYNC_CHARACTER_LIMITS"):
        monkeypatch.delenv(key, raising=False)


def _run(outcome: RunOutcome, **kwargs) -> SyncRun:
    return SyncRun(triggering_commit_id="abc123", outcome=outcome, **kwargs)


class TestParser:
    """Tests for argument parsing."""

    def test_sync_defaults(self):
        args = _create_parser().parse_args(["sync"])
        assert args.command == "sync"
        assert not args.dry_run
        assert not args.hook
        assert args.summarizer == "markdown"

    def test_status_filters(self):
        args = _create_parser().parse_args(["status", "--category", "guide", "--tier", "high"])
        assert args.category == "guide"
        assert args.tier == "high"

    def test_invalid_tier_rejected(self):
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["status", "--tier", "urgent"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            _create_parser().parse_args([])

    def test_markdown_summarizer_default(self):
        assert isinstance(_get_summarizer("markdown"), MarkdownSummarizer)


class TestSyncCommand:
    """Tests for the sync command."""

    def test_committed_exit_zero(self, project, capsys):
        with patch("llmsync.cli.main.create_orchestrator") as mock_create:
            mock_create.return_value.run.return_value = _run(
                RunOutcome.COMMITTED, commit_id="def456"
            )
            code = main(["--root", str(project), "sync"])

        assert code == 0
        assert "committed" in capsys.readouterr().out
        mock_create.return_value.close.assert_called_once()

    def test_failed_exit_one(self, project, capsys):
        with patch("llmsync.cli.main.create_orchestrator") as mock_create:
            mock_create.return_value.run.return_value = _run(
                RunOutcome.FAILED,
                failed_stage=SyncState.COMMITTING,
                error="index.lock exists",
            )
            code = main(["--root", str(project), "sync"])

        assert code == 1
        out = capsys.readouterr().out
        assert "index.lock exists" in out

    def test_hook_mode_is_quiet_on_success(self, project, capsys):
        with patch("llmsync.cli.main.create_orchestrator") as mock_create:
            mock_create.return_value.run.return_value = _run(RunOutcome.SKIPPED)
            code = main(["--root", str(project), "sync", "--hook"])

        assert code == 0
        assert capsys.readouterr().out == ""

    def test_dry_run_passed_through(self, project):
        with patch("llmsync.cli.main.create_orchestrator") as mock_create:
            mock_create.return_value.run.return_value = _run(RunOutcome.NO_CHANGE)
            main(["--root", str(project), "sync", "--dry-run"])
        mock_create.return_value.run.assert_called_once_with(dry_run=True)

    def test_invalid_settings_exit_one(self, project, capsys):
        (project / ".llmsync.yaml").write_text("character_limits: [0]\n")
        code = main(["--root", str(project), "sync"])
        assert code == 1
        assert "character limits" in capsys.readouterr().err

    def test_end_to_end_dry_run_with_markdown(self, project, capsys, monkeypatch):
        """A dry run writes derived files without needing git history."""
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(project.parent))
        code = main(["--root", str(project), "sync", "--dry-run"])
        assert code == 0
        assert (project / "llms" / "guide" / "getting-started-100.md").exists()


class TestStatusCommand:
    """Tests for the status command."""

    def test_no_documents(self, project, capsys):
        assert main(["--root", str(project), "status"]) == 0
        assert "No derived documents found" in capsys.readouterr().out

    def test_lists_documents(self, project, capsys, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(project.parent))
        main(["--root", str(project), "sync", "--dry-run"])
        capsys.readouterr()

        assert main(["--root", str(project), "status", "--category", "api"]) == 0
        out = capsys.readouterr().out
        assert "api/client" in out
        assert "guide/getting-started" not in out
        assert "not yet synced" in out


class TestLogging:
    """Tests for CLI log file handling."""

    def test_creates_logs_dir(self, project):
        main(["--root", str(project), "status"])
        assert (project / ".llmsync" / "logs").is_dir()
