"""Core enums for llmsync documents and runs."""

from enum import StrEnum


class PriorityTier(StrEnum):
    """Coarse priority band derived from a priority score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CompletionStatus(StrEnum):
    """Generation status of a derived document."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentStage(StrEnum):
    """Lifecycle stage of a derived document across runs."""

    NOT_STARTED = "not_started"
    CONTENT_GENERATED = "content_generated"
    SYNCED = "synced"
    FAILED = "failed"


class TruncationStrategy(StrEnum):
    """How overshooting summaries are cut down to the character limit."""

    WORD = "word"  # Cut at a word boundary, append ellipsis
    HARD = "hard"  # Cut exactly at the limit


class SyncState(StrEnum):
    """States of the post-commit sync orchestrator."""

    IDLE = "idle"
    GENERATING = "generating"
    DETECTING_CHANGES = "detecting_changes"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class RunOutcome(StrEnum):
    """Outcome of one sync run."""

    NO_CHANGE = "no_change"
    COMMITTED = "committed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Trigger was itself a sync commit
