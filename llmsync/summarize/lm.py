"""DSPy-backed summarizer for LLM-written derived documents."""

import logging
from functools import lru_cache
from os import getenv

import dspy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class SummarizeSignature(dspy.Signature):
    """Summarize a documentation page for consumption by language models.

    Keep the most load-bearing facts: what the page is about, the key API
    names, and any constraints a reader must not miss. Stay within the
    character limit; plain text, no markdown headings.
    """

    source_text: str = dspy.InputField(desc="Full markdown source of the page")
    character_limit: int = dspy.InputField(desc="Maximum summary length in characters")

    summary: str = dspy.OutputField(desc="Summary no longer than character_limit")


@lru_cache(maxsize=4)
def get_lm(model: str | None = None) -> dspy.LM:
    """Get cached LM instance configured from the environment.

    Env:
        LLMSYNC_LM_MODEL: model name (default: claude-haiku)
        LLMSYNC_LM_API_BASE: OpenAI-compatible proxy base URL
        LLMSYNC_LM_API_KEY: API key for the proxy
    """
    resolved = model or getenv("LLMSYNC_LM_MODEL", DEFAULT_MODEL)
    api_base = getenv("LLMSYNC_LM_API_BASE")
    logger.debug("LM config: model=%s, api_base=%s", resolved, api_base)
    return dspy.LM(
        model=resolved,
        api_base=api_base,
        api_key=getenv("LLMSYNC_LM_API_KEY"),
    )


class LMSummarizer:
    """Summarizer that asks a language model for a bounded summary.

    The model may overshoot; the generator truncates.
    """

    def __init__(self, lm: dspy.LM | None = None) -> None:
        self._lm = lm
        self._predict = dspy.Predict(SummarizeSignature)

    def __call__(self, source_text: str, limit: int) -> str:
        return self.summarize(source_text, limit)

    def summarize(self, source_text: str, limit: int) -> str:
        if not source_text.strip():
            raise ValueError("source document has no content")
        lm = self._lm or get_lm()
        with dspy.context(lm=lm):
            result = self._predict(source_text=source_text, character_limit=limit)
        summary = (result.summary or "").strip()
        logger.debug("LM summary: %d chars for limit %d", len(summary), limit)
        return summary
