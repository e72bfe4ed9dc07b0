"""Tests for llmsync.vcs helpers and GitRepository error handling."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from llmsync.core import CommitError, DetectionError
from llmsync.vcs import SYNC_TAG, GitRepository, is_sync_message, sync_trailer


class TestSyncTrailer:
    """Tests for the sync commit marker."""

    def test_trailer_format(self):
        assert sync_trailer() == "LLMS-Sync: sync"
        assert SYNC_TAG == "sync"

    def test_recognises_sync_message(self):
        message = "chore(llms): sync derived documents\n\nLLMS-Sync: sync\n"
        assert is_sync_message(message)

    @pytest.mark.parametrize(
        "message",
        [
            "feat: add docs",
            "fix: mention LLMS-Sync in body text",
            "",
        ],
    )
    def test_ordinary_messages(self, message):
        assert not is_sync_message(message)


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitRepository:
    """Tests for GitRepository with subprocess mocked."""

    def test_head_commit_id_none_without_commits(self, tmp_path):
        with patch("llmsync.vcs.subprocess.run", return_value=_completed(returncode=1)):
            assert GitRepository(tmp_path).head_commit_id() is None

    def test_sync_commit_detection_reads_head_message(self, tmp_path):
        result = _completed(stdout="chore(llms): sync\n\nLLMS-Sync: sync\n")
        with patch("llmsync.vcs.subprocess.run", return_value=result) as mock_run:
            assert GitRepository(tmp_path).current_commit_is_sync_commit()
        assert mock_run.call_args.args[0][:2] == ["git", "log"]

    def test_last_commit_fingerprint_timeout(self, tmp_path):
        """A git timeout surfaces as a DetectionError."""
        repo = GitRepository(tmp_path)
        with (
            patch.object(repo, "head_commit_id", return_value="abc"),
            patch(
                "llmsync.vcs.subprocess.run",
                side_effect=subprocess.TimeoutExpired("git", 30),
            ),
        ):
            with pytest.raises(DetectionError, match="timed out"):
                repo.last_commit_fingerprint(tmp_path / "llms" / "a-100.md")

    def test_path_outside_repository(self, tmp_path):
        repo = GitRepository(tmp_path / "repo")
        (tmp_path / "repo").mkdir()
        with pytest.raises(DetectionError, match="outside repository"):
            repo.last_commit_fingerprint(tmp_path / "elsewhere.md")

    def test_stage_failure_raises_commit_error(self, tmp_path):
        path = tmp_path / "llms" / "a-100.md"
        path.parent.mkdir()
        path.write_text("x")
        failed = _completed(returncode=128, stderr="fatal: index.lock exists")
        with patch("llmsync.vcs.subprocess.run", return_value=failed):
            with pytest.raises(CommitError, match="index.lock"):
                GitRepository(tmp_path).stage([path])

    def test_stage_removal_lookup_timeout_raises_commit_error(self, tmp_path):
        """A git timeout while checking a deleted path fails staging cleanly."""
        repo = GitRepository(tmp_path)
        with (
            patch.object(repo, "head_commit_id", return_value="abc"),
            patch(
                "llmsync.vcs.subprocess.run",
                side_effect=subprocess.TimeoutExpired("git", 30),
            ),
        ):
            with pytest.raises(CommitError, match="timed out"):
                repo.stage([tmp_path / "llms" / "gone-100.md"])

    def test_stage_path_outside_repository(self, tmp_path):
        (tmp_path / "repo").mkdir()
        with pytest.raises(CommitError, match="cannot stage"):
            GitRepository(tmp_path / "repo").stage([tmp_path / "elsewhere.md"])

    def test_commit_timeout_returns_failed_result(self, tmp_path):
        with patch(
            "llmsync.vcs.subprocess.run",
            side_effect=subprocess.TimeoutExpired("git", 30),
        ):
            result = GitRepository(tmp_path).commit("msg")
        assert not result.ok
        assert "timed out" in result.error
