"""Integration test fixtures.

These fixtures build real git repositories in tmp_path so the sync pipeline
runs against the actual `git` binary. Summarizers stay deterministic.
"""

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def git_repo(
    tmp_path: Path,
    sample_sources: dict[str, str],
    git: Callable[..., str],
    monkeypatch: pytest.MonkeyPatch,
) -> Path:
    """Git repository with docs/ committed and no derived documents yet."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    for key in ("LLMSYNC_SOURCE_DIR", "LLMSYNC_DERIVED_DIR", "LLMSYNC_CHARACTER_LIMITS"):
        monkeypatch.delenv(key, raising=False)
    # Keep the user's global git config out of the test repository
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")

    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "--quiet", "--initial-branch=main")
    git(repo, "config", "user.email", "dev@example.com")
    git(repo, "config", "user.name", "Dev")
    git(repo, "config", "commit.gpgsign", "false")

    for relative, text in sample_sources.items():
        path = repo / "docs" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    (repo / ".gitignore").write_text("*.pyc\n")
    git(repo, "add", "--all")
    git(repo, "commit", "--quiet", "-m", "docs: initial sources")
    return repo
