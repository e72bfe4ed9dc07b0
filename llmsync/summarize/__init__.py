"""Pluggable summarizers.

A summarizer is any callable `(source_text, limit) -> str`. It may raise on
failure and may overshoot the limit; the generator enforces the bound.
"""

from collections.abc import Callable

from llmsync.summarize.markdown import (
    MarkdownSummarizer,
    extract_tags,
    extract_title,
    truncate,
)

type Summarizer = Callable[[str, int], str]

__all__ = [
    "MarkdownSummarizer",
    "Summarizer",
    "extract_tags",
    "extract_title",
    "truncate",
]
