"""Tests for llmsync.core.errors."""

import pytest

from llmsync.core import (
    CommitError,
    ConfigError,
    DetectionError,
    GenerationError,
    InvalidTransitionError,
    LLMSyncError,
    RunLockedError,
    StorageError,
)


class TestErrorHierarchy:
    """All llmsync errors share one base class."""

    @pytest.mark.parametrize(
        "error_type",
        [
            CommitError,
            ConfigError,
            InvalidTransitionError,
            RunLockedError,
            StorageError,
        ],
    )
    def test_subclasses_base(self, error_type):
        assert issubclass(error_type, LLMSyncError)

    def test_generation_error_carries_document(self):
        """Should expose the document, limit and reason."""
        error = GenerationError("guide/intro", 300, "summarizer timed out")
        assert error.document_id == "guide/intro"
        assert error.limit == 300
        assert str(error) == "guide/intro@300: summarizer timed out"
        assert isinstance(error, LLMSyncError)

    def test_detection_error_carries_path(self):
        error = DetectionError("llms/guide/intro-100.md", "unreadable")
        assert error.path == "llms/guide/intro-100.md"
        assert "unreadable" in str(error)
