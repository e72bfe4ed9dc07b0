"""Workflow state tracking for derived documents.

Each derived document moves through:

    not_started -> content_generated -> synced
         \\               \\               \\
          +-> failed <-----+---------------+
                 \\
                  +-> content_generated (retried on a later run)

`synced` is not final: a source change regenerates the document and moves it
back to `content_generated`.

State is kept in a YAML file under the state directory, outside the derived
tree, so recording a stage never changes a committed artifact. Every
transition is saved as soon as it is recorded.
"""

from __future__ import annotations

import fcntl
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Self

import yaml

from llmsync.core.enums import DocumentStage
from llmsync.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

STATE_VERSION = 1
STATE_FILE = "workflow-state.yaml"

ALLOWED_TRANSITIONS: dict[DocumentStage, frozenset[DocumentStage]] = {
    DocumentStage.NOT_STARTED: frozenset(
        {DocumentStage.CONTENT_GENERATED, DocumentStage.FAILED}
    ),
    DocumentStage.CONTENT_GENERATED: frozenset(
        {
            DocumentStage.CONTENT_GENERATED,
            DocumentStage.SYNCED,
            DocumentStage.FAILED,
        }
    ),
    DocumentStage.SYNCED: frozenset(
        {DocumentStage.CONTENT_GENERATED, DocumentStage.FAILED}
    ),
    DocumentStage.FAILED: frozenset(
        {DocumentStage.CONTENT_GENERATED, DocumentStage.FAILED}
    ),
}

YAML_HEADER = """\
# llmsync workflow state - one entry per derived document (id@limit).
# Stages: not_started, content_generated, synced, failed
#
"""


def state_key(document_id: str, limit: int) -> str:
    return f"{document_id}@{limit}"


@dataclass
class StageRecord:
    """Recorded stage of one derived document."""

    stage: DocumentStage = DocumentStage.NOT_STARTED
    updated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    error: str | None = None
    failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"stage": self.stage.value, "updated_at": self.updated_at}
        if self.error:
            data["error"] = self.error
        if self.failures:
            data["failures"] = self.failures
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            stage=DocumentStage(data.get("stage", "not_started")),
            updated_at=data.get("updated_at", datetime.now(UTC).isoformat()),
            error=data.get("error"),
            failures=data.get("failures", 0),
        )


class WorkflowStateTracker:
    """Per-derived-document stage machine, persisted between runs."""

    def __init__(self, state_path: Path) -> None:
        self.state_path = state_path
        self._records: dict[str, StageRecord] = {}
        self._lock = threading.Lock()
        self._loaded = False

    @classmethod
    def in_dir(cls, state_dir: Path) -> Self:
        return cls(state_dir / STATE_FILE)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """Load state with a shared lock; a corrupt file counts as empty."""
        self._loaded = True
        self._records = {}
        if not self.state_path.exists():
            return

        try:
            with self.state_path.open() as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    content = f.read()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            data = yaml.safe_load(content) or {}
            self._records = {
                key: StageRecord.from_dict(value)
                for key, value in (data.get("documents") or {}).items()
            }
            logger.debug("Loaded %d stage records", len(self._records))
        except (OSError, yaml.YAMLError, AttributeError, ValueError) as e:
            logger.error("Failed to load workflow state from %s: %s", self.state_path, e)
            self._records = {}

    def save(self) -> None:
        """Save state atomically with an exclusive lock (temp file + rename)."""
        temp_path = self.state_path.with_suffix(".yaml.tmp")
        content = YAML_HEADER + yaml.safe_dump(
            {
                "version": STATE_VERSION,
                "documents": {
                    key: record.to_dict() for key, record in sorted(self._records.items())
                },
            },
            sort_keys=False,
            default_flow_style=False,
        )
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open("w") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.write(content)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            temp_path.replace(self.state_path)
        except OSError as e:
            logger.error("Failed to save workflow state: %s", e)
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def stage(self, document_id: str, limit: int) -> DocumentStage:
        with self._lock:
            self._ensure_loaded()
            record = self._records.get(state_key(document_id, limit))
            return record.stage if record else DocumentStage.NOT_STARTED

    def record(self, document_id: str, limit: int) -> StageRecord | None:
        with self._lock:
            self._ensure_loaded()
            return self._records.get(state_key(document_id, limit))

    def keys_at(self, stage: DocumentStage) -> list[str]:
        with self._lock:
            self._ensure_loaded()
            return sorted(k for k, r in self._records.items() if r.stage == stage)

    def pending_sync(self) -> list[str]:
        """Documents generated but not yet included in a sync commit."""
        return self.keys_at(DocumentStage.CONTENT_GENERATED)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def transition(
        self,
        document_id: str,
        limit: int,
        target: DocumentStage,
        *,
        error: str | None = None,
    ) -> DocumentStage:
        """Move a document to target and persist immediately.

        Returns:
            The previous stage.

        Raises:
            InvalidTransitionError: If the move is not allowed.
        """
        key = state_key(document_id, limit)
        with self._lock:
            self._ensure_loaded()
            current = self._records.get(key, StageRecord())
            if target not in ALLOWED_TRANSITIONS[current.stage]:
                raise InvalidTransitionError(
                    f"{key}: {current.stage} -> {target} is not allowed"
                )

            failures = current.failures + 1 if target == DocumentStage.FAILED else 0
            self._records[key] = StageRecord(stage=target, error=error, failures=failures)
            self.save()

        logger.debug("Stage %s: %s -> %s", key, current.stage, target)
        return current.stage

    def mark_generated(self, document_id: str, limit: int) -> DocumentStage:
        return self.transition(document_id, limit, DocumentStage.CONTENT_GENERATED)

    def mark_failed(self, document_id: str, limit: int, error: str) -> DocumentStage:
        return self.transition(document_id, limit, DocumentStage.FAILED, error=error)

    def mark_synced(self, keys: Iterable[tuple[str, int]]) -> None:
        """Mark documents included in a sync commit."""
        for document_id, limit in keys:
            self.transition(document_id, limit, DocumentStage.SYNCED)
