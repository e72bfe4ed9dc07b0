"""Change detection for derived documents against the last commit."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from llmsync.core.errors import DetectionError
from llmsync.vcs import VersionControl

logger = logging.getLogger(__name__)


@dataclass
class ChangeSet:
    """Derived paths whose working-tree content differs from the last commit."""

    changed_paths: set[Path] = field(default_factory=set)
    errors: dict[Path, str] = field(default_factory=dict)

    @property
    def any_changes(self) -> bool:
        return bool(self.changed_paths)

    def sorted_paths(self) -> list[Path]:
        return sorted(self.changed_paths)


class ChangeDetector:
    """Compares working-tree fingerprints with the last commit's fingerprints.

    Only paths inside the derived tree are considered. A path is changed when
    its fingerprint differs, when it is new, or when it was removed from the
    working tree. Fingerprint failures count as changes so updates are never
    silently dropped.
    """

    def __init__(self, vcs: VersionControl, derived_root: Path) -> None:
        self.vcs = vcs
        self.derived_root = derived_root.resolve()

    def in_scope(self, path: Path) -> bool:
        resolved = path.resolve()
        return resolved != self.derived_root and self.derived_root in resolved.parents

    def detect(self, paths: Iterable[Path]) -> ChangeSet:
        changes = ChangeSet()
        for path in paths:
            if not self.in_scope(path):
                logger.debug("Ignoring path outside derived tree: %s", path)
                continue
            try:
                if self._is_changed(path):
                    changes.changed_paths.add(path)
            except (DetectionError, OSError) as e:
                logger.warning("Fingerprint failed for %s, treating as changed: %s", path, e)
                changes.errors[path] = str(e)
                changes.changed_paths.add(path)

        logger.info(
            "Change detection: %d changed, %d errors",
            len(changes.changed_paths),
            len(changes.errors),
        )
        return changes

    def scan(self) -> ChangeSet:
        """Detect changes for every file currently under the derived tree."""
        if not self.derived_root.is_dir():
            return ChangeSet()
        return self.detect(p for p in self.derived_root.rglob("*") if p.is_file())

    def _is_changed(self, path: Path) -> bool:
        current = self.vcs.working_tree_fingerprint(path)
        previous = self.vcs.last_commit_fingerprint(path)
        if current is None and previous is None:
            # Missing everywhere: new content that has not been written yet
            return True
        return current != previous
