"""Tests for llmsync.support.directory."""

import shutil
from datetime import datetime, timedelta

import pytest

from llmsync.support import cleanup_old_logs, get_logs_dir, get_project_root, get_state_dir


class TestGetProjectRoot:
    """Tests for get_project_root function."""

    def test_no_git_falls_back_to_cwd(self, monkeypatch, tmp_path):
        """Should return CWD when not in a git repository."""
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        monkeypatch.chdir(tmp_path)
        assert get_project_root() == tmp_path

    def test_explicit_path_outside_git(self, monkeypatch, tmp_path):
        """Should use provided path instead of CWD."""
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        assert get_project_root(tmp_path) == tmp_path


class TestGetStateDir:
    """Tests for get_state_dir function."""

    @pytest.fixture
    def repo(self, tmp_path, git, monkeypatch):
        if shutil.which("git") is None:
            pytest.skip("git not installed")
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        git(tmp_path, "init", "--quiet")
        return tmp_path

    def test_creates_state_dir(self, tmp_path):
        state_dir = get_state_dir(tmp_path)
        assert state_dir == tmp_path / ".llmsync"
        assert state_dir.is_dir()

    def test_outside_git_writes_no_ignore_files(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        get_state_dir(tmp_path)
        assert not (tmp_path / ".gitignore").exists()

    def test_excludes_state_dir_in_git(self, repo, git):
        """Should hide .llmsync/ through info/exclude."""
        get_state_dir(repo)
        exclude = (repo / ".git" / "info" / "exclude").read_text()
        assert exclude.splitlines()[-1] == "/.llmsync/"
        assert git(repo, "status", "--porcelain") == ""

    def test_leaves_tracked_gitignore_alone(self, repo, git):
        """A committed .gitignore stays unmodified."""
        (repo / ".gitignore").write_text("*.pyc\n")
        git(repo, "add", ".gitignore")
        git(
            repo,
            "-c", "user.email=dev@example.com",
            "-c", "user.name=Dev",
            "commit", "--quiet", "--no-gpg-sign", "-m", "init",
        )  # fmt: skip

        get_logs_dir(repo)
        (repo / ".llmsync" / "logs" / "run.log").write_text("x")

        assert (repo / ".gitignore").read_text() == "*.pyc\n"
        assert git(repo, "status", "--porcelain") == ""

    def test_is_idempotent(self, repo):
        """Should not duplicate the exclude entry."""
        get_state_dir(repo)
        get_state_dir(repo)
        exclude = (repo / ".git" / "info" / "exclude").read_text()
        assert exclude.count(".llmsync") == 1

    def test_existing_entry_is_respected(self, repo):
        exclude = repo / ".git" / "info" / "exclude"
        exclude.parent.mkdir(parents=True, exist_ok=True)
        exclude.write_text("*.swp\n.llmsync/\n")
        get_state_dir(repo)
        assert exclude.read_text() == "*.swp\n.llmsync/\n"


class TestLogs:
    """Tests for log directory and retention."""

    def test_logs_dir_under_state_dir(self, tmp_path):
        logs_dir = get_logs_dir(tmp_path)
        assert logs_dir == tmp_path / ".llmsync" / "logs"
        assert logs_dir.is_dir()

    def test_cleanup_removes_only_old_logs(self, tmp_path):
        """Should delete logs older than retention and keep the rest."""
        logs_dir = get_logs_dir(tmp_path)
        old = datetime.now() - timedelta(days=10)
        recent = datetime.now() - timedelta(days=2)
        old_log = logs_dir / f"{old:%Y-%m-%d}-10:00.log"
        recent_log = logs_dir / f"{recent:%Y-%m-%d}-10:00.log"
        odd_log = logs_dir / "not-a-date.log"
        for path in (old_log, recent_log, odd_log):
            path.write_text("x")

        assert cleanup_old_logs(logs_dir, retention_days=7) == 1
        assert not old_log.exists()
        assert recent_log.exists()
        assert odd_log.exists()

    def test_cleanup_missing_dir(self, tmp_path):
        assert cleanup_old_logs(tmp_path / "missing") == 0
