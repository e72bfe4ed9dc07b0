"""Version-control capability and its git implementation."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from llmsync.core.constants import SYNC, TIMEOUTS
from llmsync.core.errors import CommitError, DetectionError
from llmsync.core.models import CommitResult, Fingerprint

logger = logging.getLogger(__name__)

SYNC_TAG = SYNC.trailer_value


class VersionControl(Protocol):
    """Operations the orchestrator and change detector need from a VCS."""

    def current_commit_is_sync_commit(self) -> bool: ...

    def head_commit_id(self) -> str | None: ...

    def working_tree_fingerprint(self, path: Path) -> Fingerprint | None: ...

    def last_commit_fingerprint(self, path: Path) -> Fingerprint | None: ...

    def stage(self, paths: Iterable[Path]) -> None: ...

    def commit(
        self,
        message: str,
        tag: str = SYNC_TAG,
        paths: Iterable[Path] | None = None,
    ) -> CommitResult: ...


def sync_trailer(tag: str = SYNC_TAG) -> str:
    return f"{SYNC.trailer_key}: {tag}"


def is_sync_message(message: str) -> bool:
    """True if a commit message carries the sync trailer."""
    prefix = f"{SYNC.trailer_key}:"
    return any(line.strip().startswith(prefix) for line in message.splitlines())


class GitRepository:
    """Git-backed VersionControl using the `git` command line."""

    def __init__(self, root: Path, *, timeout: int = TIMEOUTS.git_command) -> None:
        self.root = root
        self.timeout = timeout

    def _run(
        self, args: list[str], *, text: bool = True
    ) -> subprocess.CompletedProcess:
        """Run a git command in the repository root.

        Raises:
            subprocess.TimeoutExpired: If git exceeds the timeout.
        """
        logger.debug("git %s", " ".join(args))
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=text,
            check=False,
            cwd=self.root,
            timeout=self.timeout,
        )

    def relative(self, path: Path) -> str:
        """Repository-relative POSIX path."""
        absolute = path if path.is_absolute() else self.root / path
        return absolute.resolve().relative_to(self.root.resolve()).as_posix()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def head_commit_id(self) -> str | None:
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"])
        commit = result.stdout.strip()
        return commit if result.returncode == 0 and commit else None

    def head_message(self) -> str:
        result = self._run(["log", "-1", "--format=%B", "HEAD"])
        return result.stdout if result.returncode == 0 else ""

    def current_commit_is_sync_commit(self) -> bool:
        return is_sync_message(self.head_message())

    def working_tree_fingerprint(self, path: Path) -> Fingerprint | None:
        absolute = path if path.is_absolute() else self.root / path
        if not absolute.exists():
            return None
        try:
            return Fingerprint.of(absolute.read_bytes())
        except OSError as e:
            raise DetectionError(str(path), f"unreadable: {e}") from e

    def last_commit_fingerprint(self, path: Path) -> Fingerprint | None:
        try:
            rel = self.relative(path)
        except ValueError as e:
            raise DetectionError(str(path), "outside repository") from e

        try:
            if self.head_commit_id() is None:
                return None
            exists = self._run(["cat-file", "-e", f"HEAD:{rel}"])
            if exists.returncode != 0:
                return None
            result = self._run(["cat-file", "blob", f"HEAD:{rel}"], text=False)
        except subprocess.TimeoutExpired as e:
            raise DetectionError(rel, "git timed out") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise DetectionError(rel, stderr or "git cat-file failed")
        return Fingerprint.of(result.stdout)

    def staged_paths(self, paths: Iterable[Path]) -> list[str]:
        rels = [self.relative(p) for p in paths]
        if not rels:
            return []
        result = self._run(["diff", "--cached", "--name-only", "--", *rels])
        return [line for line in result.stdout.splitlines() if line.strip()]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def stage(self, paths: Iterable[Path]) -> None:
        """Stage additions, modifications and removals of the given paths.

        Raises:
            CommitError: If git fails or times out.
        """
        present: list[str] = []
        removed: list[str] = []
        for path in paths:
            absolute = path if path.is_absolute() else self.root / path
            try:
                rel = self.relative(path)
                if absolute.exists():
                    present.append(rel)
                elif self.last_commit_fingerprint(path) is not None:
                    removed.append(rel)
                else:
                    logger.warning("Nothing to stage for missing path %s", rel)
            except (ValueError, DetectionError) as e:
                raise CommitError(f"cannot stage {path}: {e}") from e

        try:
            if present:
                result = self._run(["add", "--", *present])
                if result.returncode != 0:
                    raise CommitError(result.stderr.strip() or "git add failed")
            if removed:
                result = self._run(["rm", "--cached", "--quiet", "--", *removed])
                if result.returncode != 0:
                    raise CommitError(result.stderr.strip() or "git rm failed")
        except subprocess.TimeoutExpired as e:
            raise CommitError("git staging timed out") from e

        logger.info("Staged %d path(s), removed %d", len(present), len(removed))

    def commit(
        self,
        message: str,
        tag: str = SYNC_TAG,
        paths: Iterable[Path] | None = None,
    ) -> CommitResult:
        """Create a sync commit restricted to paths.

        Other changes already in the index are left staged and uncommitted.
        Hooks other than post-commit are bypassed.
        """
        args = ["commit", "--no-verify", "-m", message, "-m", sync_trailer(tag)]
        try:
            if paths is not None:
                staged = self.staged_paths(paths)
                if not staged:
                    return CommitResult(ok=False, error="nothing staged")
                args += ["--only", "--", *staged]
            result = self._run(args)
        except subprocess.TimeoutExpired:
            return CommitResult(ok=False, error="git commit timed out")

        if result.returncode != 0:
            error = (result.stderr or result.stdout).strip() or "git commit failed"
            return CommitResult(ok=False, error=error)

        commit_id = self.head_commit_id()
        logger.info("Created sync commit %s", commit_id)
        return CommitResult(ok=True, commit_id=commit_id)
