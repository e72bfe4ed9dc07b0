"""Document, fingerprint and run models."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llmsync.core.enums import (
    CompletionStatus,
    DocumentStage,
    PriorityTier,
    RunOutcome,
    SyncState,
)


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class SourceDocument(BaseModel):
    """Author-maintained document that derived documents are generated from."""

    model_config = ConfigDict(frozen=True)

    id: str
    path: Path
    category: str
    raw_text: str
    title: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def source_hash(self) -> str:
        return text_hash(self.raw_text)


class Priority(BaseModel):
    """Priority score and tier for a source document."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    tier: PriorityTier


class DerivedDocument(BaseModel):
    """One character-limited rendering of a source document."""

    document_id: str
    category: str
    character_limit: int = Field(gt=0)
    content: str = ""
    priority_score: int = Field(default=0, ge=0, le=100)
    priority_tier: PriorityTier = PriorityTier.LOW
    completion_status: CompletionStatus = CompletionStatus.PENDING
    workflow_stage: DocumentStage = DocumentStage.NOT_STARTED
    last_update: str | None = None
    source_hash: str | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> DerivedDocument:
        if len(self.content) > self.character_limit:
            msg = (
                f"content length {len(self.content)} exceeds "
                f"character limit {self.character_limit}"
            )
            raise ValueError(msg)
        if self.completion_status == CompletionStatus.COMPLETED and (
            self.workflow_stage
            not in (DocumentStage.CONTENT_GENERATED, DocumentStage.SYNCED)
        ):
            msg = (
                "completed documents must be at least content_generated, "
                f"got {self.workflow_stage}"
            )
            raise ValueError(msg)
        return self

    @property
    def key(self) -> tuple[str, int]:
        return (self.document_id, self.character_limit)


@dataclass(frozen=True)
class Fingerprint:
    """Compact comparable summary of file content."""

    size: int
    digest: str

    @classmethod
    def of(cls, data: bytes) -> Fingerprint:
        return cls(size=len(data), digest=hashlib.sha256(data).hexdigest())


@dataclass(frozen=True)
class CommitResult:
    """Result of a version-control commit."""

    ok: bool
    commit_id: str | None = None
    error: str | None = None


@dataclass
class SyncRun:
    """Ephemeral record of one orchestrator invocation."""

    triggering_commit_id: str | None
    changed_paths: set[str] = field(default_factory=set)
    outcome: RunOutcome | None = None
    state: SyncState = SyncState.IDLE
    failed_stage: SyncState | None = None
    commit_id: str | None = None
    generated: int = 0
    failed_documents: list[str] = field(default_factory=list)
    error: str | None = None
    started_at: str = field(default_factory=now_iso)

    @property
    def ok(self) -> bool:
        return self.outcome != RunOutcome.FAILED
