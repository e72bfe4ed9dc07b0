"""Document registry: source catalog and derived document persistence.

Derived documents are stored one file per (document, limit), mirroring the
source layout:

    <derived_root>/<category>/<sub/dirs>/<name>-<limit>.md
    <derived_root>/<name>-<limit>.md        (top-level sources)

Each file starts with a YAML header fenced by `---` lines carrying the
document's workflow metadata, followed by the rendered content.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from llmsync.core.enums import CompletionStatus, DocumentStage, PriorityTier
from llmsync.core.errors import StorageError
from llmsync.core.models import DerivedDocument, SourceDocument
from llmsync.summarize import extract_tags, extract_title

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"
HEADER_FENCE = "---\n"


class DerivedHeader(BaseModel):
    """Typed metadata header of a derived document file."""

    document_id: str
    category: str
    character_limit: int
    priority_score: int
    priority_tier: PriorityTier
    completion_status: CompletionStatus
    workflow_stage: DocumentStage
    last_update: str | None = None
    source_hash: str | None = None


def render_derived(doc: DerivedDocument) -> str:
    """Serialize a derived document to its on-disk form."""
    header = DerivedHeader.model_validate(doc.model_dump(exclude={"content"}))
    header_yaml = yaml.safe_dump(
        header.model_dump(mode="json"),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    return f"{HEADER_FENCE}{header_yaml}{HEADER_FENCE}{doc.content}\n"


def parse_derived(text: str) -> DerivedDocument:
    """Parse the on-disk form back into a DerivedDocument.

    Raises:
        ValueError: If the header is missing or invalid.
    """
    if not text.startswith(HEADER_FENCE):
        raise ValueError("missing metadata header")
    end = text.find("\n" + HEADER_FENCE, len(HEADER_FENCE) - 1)
    if end == -1:
        raise ValueError("unterminated metadata header")

    raw_header = text[len(HEADER_FENCE) : end + 1]
    body = text[end + 1 + len(HEADER_FENCE) :]
    if body.endswith("\n"):
        body = body[:-1]

    try:
        data = yaml.safe_load(raw_header) or {}
        header = DerivedHeader.model_validate(data)
        return DerivedDocument(content=body, **header.model_dump())
    except (yaml.YAMLError, ValidationError) as e:
        raise ValueError(f"invalid metadata header: {e}") from e


class DocumentRegistry:
    """Catalog of source documents and their derived renderings.

    One instance per process run; passed explicitly to the scorer, generator,
    tracker and detector.
    """

    def __init__(self, source_root: Path, derived_root: Path) -> None:
        self.source_root = source_root
        self.derived_root = derived_root
        self._sources: dict[str, SourceDocument] | None = None
        self._derived: dict[tuple[str, int], DerivedDocument] | None = None
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def list_sources(self) -> list[SourceDocument]:
        """Scan source_root for markdown documents, sorted by id."""
        if self._sources is None:
            self._sources = {doc.id: doc for doc in self._scan_sources()}
        return [self._sources[key] for key in sorted(self._sources)]

    def get_source(self, document_id: str) -> SourceDocument | None:
        self.list_sources()
        assert self._sources is not None
        return self._sources.get(document_id)

    def refresh(self) -> None:
        """Drop cached sources and derived documents."""
        with self._lock:
            self._sources = None
            self._derived = None

    def _scan_sources(self) -> list[SourceDocument]:
        if not self.source_root.is_dir():
            logger.warning("Source directory not found: %s", self.source_root)
            return []

        derived = self.derived_root.resolve()
        sources: list[SourceDocument] = []
        for path in sorted(self.source_root.rglob("*.md")):
            resolved = path.resolve()
            if resolved == derived or derived in resolved.parents:
                continue
            relative = path.relative_to(self.source_root)
            if any(part.startswith(".") for part in relative.parts):
                continue

            category = relative.parts[0] if len(relative.parts) > 1 else DEFAULT_CATEGORY
            # Top-level files keep a bare id; `general` is only their category
            document_id = relative.with_suffix("").as_posix()

            try:
                raw_text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable source %s: %s", path, e)
                continue

            sources.append(
                SourceDocument(
                    id=document_id,
                    path=path,
                    category=category,
                    raw_text=raw_text,
                    title=extract_title(raw_text),
                    tags=extract_tags(raw_text),
                )
            )

        logger.debug("Found %d source documents in %s", len(sources), self.source_root)
        return sources

    # -------------------------------------------------------------------------
    # Derived documents
    # -------------------------------------------------------------------------

    def derived_path(self, category: str, document_id: str, limit: int) -> Path:
        """Storage path for a (category, document, limit) rendering.

        Ids already prefixed by their category, and top-level ids without one,
        map straight onto the derived tree. Sub-directories are kept, so two
        distinct ids never share a path.
        """
        if document_id.startswith(f"{category}/") or "/" not in document_id:
            relative = document_id
        else:
            relative = f"{category}/{document_id}"
        return self.derived_root / f"{relative}-{limit}.md"

    def path_for(self, doc: DerivedDocument) -> Path:
        return self.derived_path(doc.category, doc.document_id, doc.character_limit)

    def load_derived(self) -> dict[tuple[str, int], DerivedDocument]:
        """Parse all derived files on disk; malformed files are skipped."""
        with self._lock:
            if self._derived is not None:
                return self._derived

            derived: dict[tuple[str, int], DerivedDocument] = {}
            if self.derived_root.is_dir():
                for path in sorted(self.derived_root.rglob("*.md")):
                    try:
                        doc = parse_derived(path.read_text(encoding="utf-8"))
                    except (OSError, UnicodeDecodeError, ValueError) as e:
                        logger.warning("Skipping malformed derived file %s: %s", path, e)
                        continue
                    derived[doc.key] = doc

            logger.debug("Loaded %d derived documents", len(derived))
            self._derived = derived
            return derived

    def list_derived(self) -> list[DerivedDocument]:
        return [doc for _, doc in sorted(self.load_derived().items())]

    def get_derived(self, document_id: str, limit: int) -> DerivedDocument | None:
        return self.load_derived().get((document_id, limit))

    def find(
        self,
        *,
        category: str | None = None,
        tier: PriorityTier | None = None,
    ) -> list[DerivedDocument]:
        """Derived documents filtered by category and/or priority tier."""
        return [
            doc
            for doc in self.list_derived()
            if (category is None or doc.category == category)
            and (tier is None or doc.priority_tier == tier)
        ]

    def upsert_derived(self, doc: DerivedDocument, *, persist: bool = True) -> Path:
        """Persist a derived document atomically, then update the catalog.

        Writes to a temp file and renames it over the target, so a failed
        write leaves the previous version intact. With persist=False only the
        in-memory catalog is updated.

        Raises:
            StorageError: If the file could not be written.
        """
        path = self.path_for(doc)
        if not persist:
            self.update_state(doc)
            return path

        temp_path = path.with_suffix(".md.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(render_derived(doc), encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to write {path}: {e}") from e

        self.update_state(doc)
        logger.debug("Wrote derived document %s", path)
        return path

    def update_state(self, doc: DerivedDocument) -> None:
        """Update the in-memory slot without touching disk."""
        derived = self.load_derived()
        with self._lock:
            derived[doc.key] = doc
