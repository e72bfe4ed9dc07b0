"""Deterministic markdown-to-summary rendering and length enforcement."""

from __future__ import annotations

import re

from llmsync.core.constants import GENERATION
from llmsync.core.enums import TruncationStrategy

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_HEADING_MARK = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_FORMATTING = re.compile(r"[*_~`]")
_FRONT_MATTER = re.compile(r"\A---\n.*?\n---\n", re.DOTALL)
_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_BULLET = re.compile(r"^[-*+]\s+(.+)$", re.MULTILINE)
_NUMBERED = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
_FIRST_SENTENCE = re.compile(r"^[^.!?]+[.!?]")


def truncate(
    text: str,
    limit: int,
    strategy: TruncationStrategy = TruncationStrategy.WORD,
    *,
    ellipsis: str = GENERATION.ellipsis,
) -> str:
    """Cut text so that len(result) <= limit.

    WORD cuts at the last space when that keeps at least
    `GENERATION.word_boundary_ratio` of the limit, then appends the ellipsis.
    HARD slices at the limit.
    """
    if len(text) <= limit:
        return text
    if strategy == TruncationStrategy.HARD or limit <= len(ellipsis):
        return text[:limit]

    cut = text[: limit - len(ellipsis)]
    last_space = cut.rfind(" ")
    if last_space > limit * GENERATION.word_boundary_ratio:
        cut = cut[:last_space]
    return cut.rstrip() + ellipsis


def extract_title(text: str) -> str | None:
    match = _TITLE.search(text)
    return match.group(1).strip() if match else None


def extract_tags(text: str, max_tags: int = 10) -> tuple[str, ...]:
    """Tags from a `## Keywords:` line and code fence languages."""
    tags: list[str] = []
    keyword_line = re.search(
        r"##\s*(?:Keywords?|Tags?|Topics?)[:\s]*([^\n]+)", text, re.IGNORECASE
    )
    if keyword_line:
        tags.extend(
            k.strip().lower() for k in re.split(r"[,;]", keyword_line.group(1))
        )
    tags.extend(lang.lower() for lang in re.findall(r"```(\w+)", text))

    unique = list(dict.fromkeys(t for t in tags if t))
    return tuple(unique[:max_tags])


def plain_text(text: str) -> str:
    """Strip markdown syntax and collapse whitespace."""
    text = _FRONT_MATTER.sub("", text)
    text = _CODE_BLOCK.sub("", text)
    text = _HEADING_MARK.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _FORMATTING.sub("", text)
    return " ".join(text.split())


def key_points(text: str, max_points: int) -> list[str]:
    """Bulleted and numbered list items, rendered as `- item`."""
    if max_points <= 0:
        return []
    points = [f"- {m.strip()}" for m in _BULLET.findall(text)][:max_points]
    if len(points) < max_points:
        points.extend(
            f"- {m.strip()}" for m in _NUMBERED.findall(text)[: max_points - len(points)]
        )
    return points


class MarkdownSummarizer:
    """Default summarizer: title, leading text and key points.

    Output may overshoot the limit; the generator enforces it.
    """

    def __call__(self, source_text: str, limit: int) -> str:
        return self.summarize(source_text, limit)

    def summarize(self, source_text: str, limit: int) -> str:
        body = plain_text(source_text)
        if not body:
            raise ValueError("source document has no content")

        title = extract_title(source_text) or "Document"
        if limit <= 100:
            match = _FIRST_SENTENCE.match(body)
            first = match.group(0).strip() if match else body[:100]
            return f"{title} - {first}"

        if limit <= 300:
            lead = body[:150]
            points = key_points(source_text, 2)
        else:
            lead = body[: int(limit * 0.6)]
            points = key_points(source_text, limit // 100)

        summary = f"{title}\n\n{lead}"
        if points:
            summary += "\n\nKey points:\n" + "\n".join(points)
        return summary
