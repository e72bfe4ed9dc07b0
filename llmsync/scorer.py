"""Priority scoring for source documents.

Scores are a pure function of the document's own metadata, so repeated runs
over unchanged sources produce identical scores and tiers.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from llmsync.core.constants import SYNC, THRESHOLDS, TierThresholds
from llmsync.core.enums import PriorityTier
from llmsync.core.models import Priority, SourceDocument

# Source length (chars) at which the size bonus saturates
SIZE_BONUS_CAP = 10
SIZE_BONUS_STEP = 1000


def tier_for(score: int, thresholds: TierThresholds = THRESHOLDS) -> PriorityTier:
    """Map a score to its tier; monotonic in score."""
    if score >= thresholds.high:
        return PriorityTier.HIGH
    if score >= thresholds.medium:
        return PriorityTier.MEDIUM
    return PriorityTier.LOW


@dataclass(frozen=True)
class PriorityScorer:
    """Assigns priority scores and tiers to source documents."""

    thresholds: TierThresholds = THRESHOLDS
    category_weights: Mapping[str, int] = field(
        default_factory=lambda: dict(SYNC.category_weights)
    )
    default_weight: int = SYNC.default_category_weight

    def score(self, source: SourceDocument) -> Priority:
        base = self.category_weights.get(source.category, self.default_weight)
        size_bonus = min(SIZE_BONUS_CAP, len(source.raw_text) // SIZE_BONUS_STEP)
        structure_bonus = 0
        if source.title:
            structure_bonus += 5
        if "```" in source.raw_text:
            structure_bonus += 5

        value = max(0, min(100, base + size_bonus + structure_bonus))
        return Priority(score=value, tier=tier_for(value, self.thresholds))

    def rank(self, sources: Iterable[SourceDocument]) -> list[SourceDocument]:
        """Order sources by descending score, ties broken by id."""
        return sorted(sources, key=lambda s: (-self.score(s).score, s.id))
