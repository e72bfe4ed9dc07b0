"""Root test fixtures shared across unit and integration tests.

Module-specific fixtures are in:
- tests/integration/conftest.py (real git repositories)

This file contains fixtures used by both test categories.
"""

import logging
import subprocess
from collections.abc import Callable, Generator, Iterable
from pathlib import Path

import pytest

from llmsync.core import CommitError, CommitResult, Fingerprint
from llmsync.generator import CharacterLimitGenerator
from llmsync.registry import DocumentRegistry
from llmsync.summarize import MarkdownSummarizer
from llmsync.tracker import WorkflowStateTracker

# ============================================================================
# Source Documents
# ============================================================================

GUIDE_TEXT = """\
# Getting Started

Install the package and run the first command. The CLI reads settings from
the project root and writes derived documents next to the sources.

- Install with pip
- Run the sync command
- Commit the results

```bash
llmsync sync
```
"""

API_TEXT = """\
# Client API

The client exposes a small surface. Every call returns a typed result and
raises on transport errors.

1. Create a client
2. Call a method
"""

CONCEPT_TEXT = """\
# Priorities

Documents are scored by category, size and structure.
"""


def write_sources(source_root: Path, files: dict[str, str]) -> None:
    for relative, text in files.items():
        path = source_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)


@pytest.fixture
def sample_sources() -> dict[str, str]:
    return {
        "guide/getting-started.md": GUIDE_TEXT,
        "api/client.md": API_TEXT,
        "concept/priorities.md": CONCEPT_TEXT,
    }


@pytest.fixture
def project(tmp_path: Path, sample_sources: dict[str, str]) -> Path:
    """Project root with a docs/ tree of markdown sources."""
    write_sources(tmp_path / "docs", sample_sources)
    return tmp_path


@pytest.fixture
def registry(project: Path) -> DocumentRegistry:
    return DocumentRegistry(project / "docs", project / "llms")


@pytest.fixture
def tracker(project: Path) -> WorkflowStateTracker:
    return WorkflowStateTracker.in_dir(project / ".llmsync")


@pytest.fixture
def make_generator(
    registry: DocumentRegistry, tracker: WorkflowStateTracker
) -> Generator[Callable[..., CharacterLimitGenerator]]:
    """Factory for generators sharing the fixture registry and tracker."""
    created: list[CharacterLimitGenerator] = []

    def _make(summarizer=None, **kwargs) -> CharacterLimitGenerator:
        generator = CharacterLimitGenerator(
            registry, tracker, summarizer or MarkdownSummarizer(), **kwargs
        )
        created.append(generator)
        return generator

    yield _make
    for generator in created:
        generator.close()


# ============================================================================
# Version Control Fake
# ============================================================================


class FakeVCS:
    """In-memory VersionControl: commits snapshot working-tree bytes."""

    def __init__(self) -> None:
        self.committed: dict[Path, bytes] = {}
        self.messages: list[str] = []
        self.staged: list[Path] = []
        self.head_is_sync = False
        self.stage_error: str | None = None
        self.commit_error: str | None = None

    def current_commit_is_sync_commit(self) -> bool:
        return self.head_is_sync

    def head_commit_id(self) -> str | None:
        return f"c{len(self.messages)}" if self.messages else None

    def working_tree_fingerprint(self, path: Path) -> Fingerprint | None:
        return Fingerprint.of(path.read_bytes()) if path.exists() else None

    def last_commit_fingerprint(self, path: Path) -> Fingerprint | None:
        data = self.committed.get(path)
        return Fingerprint.of(data) if data is not None else None

    def stage(self, paths: Iterable[Path]) -> None:
        if self.stage_error:
            raise CommitError(self.stage_error)
        self.staged = list(paths)

    def commit(
        self,
        message: str,
        tag: str = "sync",
        paths: Iterable[Path] | None = None,
    ) -> CommitResult:
        if self.commit_error:
            return CommitResult(ok=False, error=self.commit_error)
        for path in paths if paths is not None else self.staged:
            if path.exists():
                self.committed[path] = path.read_bytes()
            else:
                self.committed.pop(path, None)
        self.messages.append(f"{message}\n\nLLMS-Sync: {tag}")
        self.head_is_sync = True
        self.staged = []
        return CommitResult(ok=True, commit_id=self.head_commit_id())

    def user_commit(self, message: str = "feat: user change") -> None:
        """Simulate a normal commit landing before the hook fires."""
        self.messages.append(message)
        self.head_is_sync = False


@pytest.fixture
def fake_vcs() -> FakeVCS:
    return FakeVCS()


# ============================================================================
# Git Helpers
# ============================================================================


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git() -> Callable[..., str]:
    """Run a git command in a repository and return stdout."""
    return run_git


# ============================================================================
# Logging Cleanup (autouse)
# ============================================================================


@pytest.fixture(autouse=True)
def cleanup_logging_handlers():
    """Clean up logging handlers after each test to prevent test pollution.

    This prevents tests that call setup_logging() from polluting other tests
    with FileHandlers that write to real log files.
    """
    yield
    logger = logging.getLogger("llmsync")
    for handler in logger.handlers[:]:
        handler.close()
    logger.handlers.clear()
