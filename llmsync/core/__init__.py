"""Core types for llmsync.

The leaf modules (enums, errors, models, constants) have no imports from
other llmsync modules outside core/.
"""

from llmsync.core.enums import (
    CompletionStatus,
    DocumentStage,
    PriorityTier,
    RunOutcome,
    SyncState,
    TruncationStrategy,
)
from llmsync.core.errors import (
    CommitError,
    ConfigError,
    DetectionError,
    GenerationError,
    InvalidTransitionError,
    LLMSyncError,
    RunLockedError,
    StorageError,
)
from llmsync.core.models import (
    CommitResult,
    DerivedDocument,
    Fingerprint,
    Priority,
    SourceDocument,
    SyncRun,
)

__all__ = [
    "CommitError",
    "CommitResult",
    "CompletionStatus",
    "ConfigError",
    "DerivedDocument",
    "DetectionError",
    "DocumentStage",
    "Fingerprint",
    "GenerationError",
    "InvalidTransitionError",
    "LLMSyncError",
    "Priority",
    "PriorityTier",
    "RunLockedError",
    "RunOutcome",
    "SourceDocument",
    "StorageError",
    "SyncRun",
    "SyncState",
    "TruncationStrategy",
]
