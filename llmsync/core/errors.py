"""Error taxonomy for llmsync.

Per-document errors (GenerationError, StorageError, DetectionError) are
isolated by the caller and never abort a run. CommitError and RunLockedError
end a run with a failed outcome.
"""


class LLMSyncError(Exception):
    """Base class for llmsync errors."""


class ConfigError(LLMSyncError):
    """Settings file or environment override is invalid."""


class GenerationError(LLMSyncError):
    """Summarization of one document failed."""

    def __init__(self, document_id: str, limit: int, reason: str) -> None:
        self.document_id = document_id
        self.limit = limit
        self.reason = reason
        super().__init__(f"{document_id}@{limit}: {reason}")


class StorageError(LLMSyncError):
    """Writing a derived document to disk failed; the previous file is intact."""


class DetectionError(LLMSyncError):
    """Fingerprint computation failed for a path."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class CommitError(LLMSyncError):
    """Staging or committing derived documents failed."""


class InvalidTransitionError(LLMSyncError):
    """Workflow stage transition is not allowed."""


class RunLockedError(LLMSyncError):
    """Another sync run holds the run lock."""
