"""Post-commit sync orchestrator.

Runs after a normal commit completes:

    Idle -> Generating -> DetectingChanges -> Committing -> Done
                 |                |                |
                 +-> Failed       +-> Done         +-> Failed
                     (nothing       (no_change)       (stage/commit error)
                      generated)

The entry transition is guarded: when the triggering commit is itself a sync
commit the run is skipped before any generation, staging or commit.

The tracker is the source of truth for workflow stages. A derived file's
header keeps the stage it was written with (`content_generated`) and is not
rewritten on sync, so committed files stay identical to HEAD.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from llmsync.config import SyncSettings
from llmsync.core.constants import SYNC, TierThresholds
from llmsync.core.enums import DocumentStage, RunOutcome, SyncState
from llmsync.core.errors import CommitError, RunLockedError
from llmsync.core.models import SyncRun
from llmsync.detector import ChangeDetector, ChangeSet
from llmsync.generator import CharacterLimitGenerator, GenerationOutcome
from llmsync.registry import DocumentRegistry
from llmsync.scorer import PriorityScorer
from llmsync.summarize import Summarizer
from llmsync.support.lock import RunLock
from llmsync.tracker import WorkflowStateTracker
from llmsync.vcs import SYNC_TAG, GitRepository, VersionControl

logger = logging.getLogger(__name__)

LOCK_FILE = "sync.lock"


class RunCancelled(Exception):
    """Raised internally when cancel() is observed before committing."""


@dataclass
class SyncOrchestrator:
    """Generates derived documents and records their changes in one commit."""

    registry: DocumentRegistry
    generator: CharacterLimitGenerator
    tracker: WorkflowStateTracker
    detector: ChangeDetector
    vcs: VersionControl
    lock: RunLock | None = None
    commit_message: str = SYNC.commit_message

    def __post_init__(self) -> None:
        self._cancelled = threading.Event()
        self.state = SyncState.IDLE

    def close(self) -> None:
        self.generator.close()

    def cancel(self) -> None:
        """Request cancellation; honored only before committing starts."""
        self._cancelled.set()

    def _enter(self, run: SyncRun, state: SyncState) -> None:
        logger.info("Sync state: %s -> %s", run.state, state)
        run.state = state
        self.state = state

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise RunCancelled

    def _finish(
        self,
        run: SyncRun,
        outcome: RunOutcome,
        *,
        error: str | None = None,
    ) -> SyncRun:
        if outcome == RunOutcome.FAILED:
            run.failed_stage = run.state
            self._enter(run, SyncState.FAILED)
        else:
            self._enter(run, SyncState.DONE)
        run.outcome = outcome
        run.error = error
        logger.info(
            "Sync run finished: outcome=%s changed=%d commit=%s",
            outcome,
            len(run.changed_paths),
            run.commit_id,
        )
        return run

    def run(self, *, dry_run: bool = False) -> SyncRun:
        """Execute one generation-and-sync run.

        Args:
            dry_run: Stop after change detection without staging or committing.

        Returns:
            The SyncRun record; outcome is failed on run-level errors.
        """
        self._cancelled.clear()
        self.state = SyncState.IDLE
        run = SyncRun(triggering_commit_id=self.vcs.head_commit_id())

        if self.vcs.current_commit_is_sync_commit():
            logger.info(
                "Trigger %s is a sync commit, skipping", run.triggering_commit_id
            )
            run.outcome = RunOutcome.SKIPPED
            return run

        if self.lock is None:
            return self._run_unlocked(run, dry_run=dry_run)

        try:
            self.lock.acquire()
        except RunLockedError as e:
            logger.error("%s", e)
            return self._finish(run, RunOutcome.FAILED, error=str(e))
        try:
            return self._run_unlocked(run, dry_run=dry_run)
        finally:
            self.lock.release()

    def _run_unlocked(self, run: SyncRun, *, dry_run: bool) -> SyncRun:
        try:
            # Generating
            self._enter(run, SyncState.GENERATING)
            outcomes = self._generate(run)
            if outcomes and all(not o.ok for o in outcomes):
                return self._finish(
                    run, RunOutcome.FAILED, error="no derived document could be generated"
                )
            self._check_cancelled()

            # DetectingChanges
            self._enter(run, SyncState.DETECTING_CHANGES)
            changes = self.detector.detect(self._tracked_paths(outcomes))
            run.changed_paths = {str(p) for p in changes.changed_paths}
            self._mark_unchanged_synced(outcomes, changes)

            if not changes.any_changes:
                return self._finish(run, RunOutcome.NO_CHANGE)
            if dry_run:
                logger.info("Dry run: %d path(s) would be committed", len(changes.changed_paths))
                return self._finish(run, RunOutcome.NO_CHANGE)
            self._check_cancelled()
        except RunCancelled:
            logger.warning("Sync run cancelled before committing")
            return self._finish(run, RunOutcome.FAILED, error="cancelled")

        # Committing: runs to completion once issued
        self._enter(run, SyncState.COMMITTING)
        try:
            run.commit_id = self._commit(changes)
        except CommitError as e:
            logger.error("Sync commit failed: %s", e)
            return self._finish(run, RunOutcome.FAILED, error=str(e))

        self._mark_committed_synced(outcomes, changes)
        return self._finish(run, RunOutcome.COMMITTED)

    def _generate(self, run: SyncRun) -> list[GenerationOutcome]:
        self.registry.refresh()
        sources = self.registry.list_sources()
        outcomes = self.generator.generate_all(sources)
        run.generated = sum(1 for o in outcomes if o.ok)
        run.failed_documents = [
            f"{o.document.document_id}@{o.document.character_limit}"
            for o in outcomes
            if not o.ok
        ]
        logger.info(
            "Generation: %d ok, %d failed", run.generated, len(run.failed_documents)
        )
        return outcomes

    def _tracked_paths(self, outcomes: list[GenerationOutcome]) -> list[Path]:
        """Derived paths of documents that exist after generation.

        A document that failed on its first attempt has no file to compare.
        """
        return [o.path for o in outcomes if o.ok or o.path.exists()]

    def _commit(self, changes: ChangeSet) -> str | None:
        paths = changes.sorted_paths()
        self.vcs.stage(paths)
        result = self.vcs.commit(self.commit_message, SYNC_TAG, paths)
        if not result.ok:
            raise CommitError(result.error or "commit failed")
        return result.commit_id

    def _mark_unchanged_synced(
        self, outcomes: list[GenerationOutcome], changes: ChangeSet
    ) -> None:
        """Generated documents identical to the last commit are already synced."""
        synced = [
            o.document.key
            for o in outcomes
            if o.ok
            and o.path not in changes.changed_paths
            and self.tracker.stage(*o.document.key) == DocumentStage.CONTENT_GENERATED
        ]
        if synced:
            self.tracker.mark_synced(synced)

    def _mark_committed_synced(
        self, outcomes: list[GenerationOutcome], changes: ChangeSet
    ) -> None:
        committed = [
            o.document.key
            for o in outcomes
            if o.path in changes.changed_paths
            and self.tracker.stage(*o.document.key) == DocumentStage.CONTENT_GENERATED
        ]
        self.tracker.mark_synced(committed)


def create_orchestrator(
    root: Path,
    settings: SyncSettings,
    summarizer: Summarizer,
    *,
    state_dir: Path,
) -> SyncOrchestrator:
    """Wire the default git-backed components for a project root."""
    registry = DocumentRegistry(root / settings.source_dir, root / settings.derived_dir)
    tracker = WorkflowStateTracker.in_dir(state_dir)
    scorer = PriorityScorer(
        thresholds=TierThresholds(
            high=settings.high_threshold, medium=settings.medium_threshold
        ),
        category_weights=settings.category_weights,
    )
    generator = CharacterLimitGenerator(
        registry,
        tracker,
        summarizer,
        scorer=scorer,
        limits=settings.character_limits,
        truncation=settings.truncation,
        timeout=settings.summarizer_timeout,
        max_workers=settings.max_workers,
    )
    vcs = GitRepository(root, timeout=settings.git_timeout)
    return SyncOrchestrator(
        registry=registry,
        generator=generator,
        tracker=tracker,
        detector=ChangeDetector(vcs, registry.derived_root),
        vcs=vcs,
        lock=RunLock(state_dir / LOCK_FILE),
        commit_message=settings.commit_message,
    )
