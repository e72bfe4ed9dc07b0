"""Character-limit generation of derived documents."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from llmsync.core.constants import GENERATION, TIMEOUTS
from llmsync.core.enums import CompletionStatus, DocumentStage, TruncationStrategy
from llmsync.core.errors import GenerationError, StorageError
from llmsync.core.models import DerivedDocument, Priority, SourceDocument, now_iso
from llmsync.registry import DocumentRegistry
from llmsync.scorer import PriorityScorer
from llmsync.summarize import Summarizer, truncate
from llmsync.tracker import WorkflowStateTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of generating one (source, limit) pair."""

    document: DerivedDocument
    path: Path
    written: bool = False  # False when content was unchanged or generation failed
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CharacterLimitGenerator:
    """Produces bounded-length derived documents from source documents.

    Each summarizer call runs on a daemon thread with a timeout; a timeout or
    exception marks only that document as failed. A failed document keeps its
    previous content on disk and in the registry.
    """

    def __init__(
        self,
        registry: DocumentRegistry,
        tracker: WorkflowStateTracker,
        summarizer: Summarizer,
        *,
        scorer: PriorityScorer | None = None,
        limits: Sequence[int] = GENERATION.character_limits,
        truncation: TruncationStrategy = TruncationStrategy.WORD,
        timeout: float = TIMEOUTS.summarizer,
        max_workers: int = GENERATION.max_workers,
    ) -> None:
        self.registry = registry
        self.tracker = tracker
        self.summarizer = summarizer
        self.scorer = scorer or PriorityScorer()
        self.limits = tuple(sorted(set(limits)))
        self.truncation = truncation
        self.timeout = timeout
        self.max_workers = max_workers
        self._abandoned: list[threading.Thread] = []
        self._lock = threading.Lock()

    def close(self) -> None:
        """Report summarizer calls still running past their timeout.

        They run on daemon threads and are dropped when the process exits.
        """
        with self._lock:
            running = [worker for worker in self._abandoned if worker.is_alive()]
            self._abandoned.clear()
        if running:
            logger.warning(
                "Abandoning %d summarizer call(s) still running after timeout",
                len(running),
            )

    def _call_summarizer(self, source: SourceDocument, limit: int) -> str:
        """Call the summarizer on a daemon thread, waiting at most self.timeout.

        Raises:
            GenerationError: On summarizer failure or timeout.
        """
        results: queue.Queue[tuple[str | None, Exception | None]] = queue.Queue(maxsize=1)

        def target() -> None:
            try:
                results.put((self.summarizer(source.raw_text, limit), None))
            except Exception as e:
                results.put((None, e))

        # Daemon: a call that never returns must not keep the process alive
        worker = threading.Thread(
            target=target, daemon=True, name=f"summarize-{source.id}@{limit}"
        )
        worker.start()
        try:
            summary, error = results.get(timeout=self.timeout)
        except queue.Empty:
            with self._lock:
                self._abandoned.append(worker)
            raise GenerationError(
                source.id, limit, f"summarizer timed out after {self.timeout}s"
            ) from None

        if error is not None:
            raise GenerationError(source.id, limit, f"summarizer failed: {error}") from error
        return summary or ""

    def _summarize(self, source: SourceDocument, limit: int) -> str:
        """Run the summarizer with a timeout and enforce the length bound.

        Raises:
            GenerationError: On empty source, summarizer failure or timeout.
        """
        if not source.raw_text.strip():
            raise GenerationError(source.id, limit, "empty source document")

        summary = self._call_summarizer(source, limit).strip()
        if not summary:
            raise GenerationError(source.id, limit, "summarizer returned no content")

        if len(summary) > limit:
            logger.debug(
                "Truncating %s@%d from %d chars", source.id, limit, len(summary)
            )
            summary = truncate(summary, limit, self.truncation)
        return summary

    def generate(self, source: SourceDocument, limit: int) -> GenerationOutcome:
        """Generate or refresh one derived document."""
        priority = self.scorer.score(source)
        previous = self.registry.get_derived(source.id, limit)
        path = self.registry.derived_path(source.category, source.id, limit)

        try:
            content = self._summarize(source, limit)
        except GenerationError as e:
            return self._fail(source, limit, previous, path, priority, e)

        stage = self.tracker.stage(source.id, limit)
        unchanged = (
            previous is not None
            and previous.content == content
            and previous.priority_score == priority.score
            and previous.priority_tier == priority.tier
            and previous.category == source.category
        )
        if unchanged:
            assert previous is not None
            if stage in (DocumentStage.NOT_STARTED, DocumentStage.FAILED):
                self.tracker.mark_generated(source.id, limit)
                stage = DocumentStage.CONTENT_GENERATED
            doc = previous.model_copy(
                update={
                    "completion_status": CompletionStatus.COMPLETED,
                    "workflow_stage": stage,
                }
            )
            self.registry.update_state(doc)
            logger.debug("Unchanged %s@%d, skipping write", source.id, limit)
            return GenerationOutcome(document=doc, path=path)

        doc = DerivedDocument(
            document_id=source.id,
            category=source.category,
            character_limit=limit,
            content=content,
            priority_score=priority.score,
            priority_tier=priority.tier,
            completion_status=CompletionStatus.COMPLETED,
            workflow_stage=DocumentStage.CONTENT_GENERATED,
            last_update=now_iso(),
            source_hash=source.source_hash,
        )
        try:
            path = self.registry.upsert_derived(doc)
        except StorageError as e:
            return self._fail(source, limit, previous, path, priority, e)

        # Recorded only after the write succeeded
        self.tracker.mark_generated(source.id, limit)
        logger.info("Generated %s@%d (%d chars)", source.id, limit, len(content))
        return GenerationOutcome(document=doc, path=path, written=True)

    def _fail(
        self,
        source: SourceDocument,
        limit: int,
        previous: DerivedDocument | None,
        path: Path,
        priority: Priority,
        error: Exception,
    ) -> GenerationOutcome:
        reason = error.reason if isinstance(error, GenerationError) else str(error)
        logger.warning("Generation failed for %s@%d: %s", source.id, limit, reason)
        self.tracker.mark_failed(source.id, limit, reason)

        if previous is not None:
            doc = previous.model_copy(
                update={
                    "completion_status": CompletionStatus.FAILED,
                    "workflow_stage": DocumentStage.FAILED,
                }
            )
        else:
            doc = DerivedDocument(
                document_id=source.id,
                category=source.category,
                character_limit=limit,
                priority_score=priority.score,
                priority_tier=priority.tier,
                completion_status=CompletionStatus.FAILED,
                workflow_stage=DocumentStage.FAILED,
            )
        self.registry.update_state(doc)
        return GenerationOutcome(document=doc, path=path, error=reason)

    def generate_all(
        self, sources: Iterable[SourceDocument]
    ) -> list[GenerationOutcome]:
        """Generate every configured limit for every source.

        Sources are processed in priority order; summarizer calls fan out over
        the worker pool. Returns once every pair has been attempted.
        """
        ranked = self.scorer.rank(sources)
        pairs = [(source, limit) for source in ranked for limit in self.limits]
        if not pairs:
            return []

        logger.info(
            "Generating %d document(s) across %d limit(s)",
            len(ranked),
            len(self.limits),
        )
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="generate"
        ) as pool:
            futures = [pool.submit(self.generate, source, limit) for source, limit in pairs]
            return [future.result() for future in futures]
