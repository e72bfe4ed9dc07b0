"""llmsync - character-limited LLM documents kept in sync with git commits."""

from llmsync.config import SyncSettings, load_settings
from llmsync.detector import ChangeDetector, ChangeSet
from llmsync.generator import CharacterLimitGenerator, GenerationOutcome
from llmsync.orchestrator import SyncOrchestrator, create_orchestrator
from llmsync.registry import DocumentRegistry
from llmsync.scorer import PriorityScorer
from llmsync.tracker import WorkflowStateTracker
from llmsync.vcs import GitRepository, VersionControl

__all__ = [
    "ChangeDetector",
    "ChangeSet",
    "CharacterLimitGenerator",
    "DocumentRegistry",
    "GenerationOutcome",
    "GitRepository",
    "PriorityScorer",
    "SyncOrchestrator",
    "SyncSettings",
    "VersionControl",
    "WorkflowStateTracker",
    "create_orchestrator",
    "load_settings",
]
