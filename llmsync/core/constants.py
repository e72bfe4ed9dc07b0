"""Centralized configuration constants."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GenerationConfig:
    """Derived document generation settings."""

    character_limits: tuple[int, ...] = (100, 300, 1000)
    max_workers: int = 4
    ellipsis: str = "..."
    # Word-boundary cuts are only used when they keep this share of the limit
    word_boundary_ratio: float = 0.8


@dataclass(frozen=True)
class TierThresholds:
    """Score thresholds mapping priority scores to tiers."""

    high: int = 70
    medium: int = 40


@dataclass(frozen=True)
class TimeoutConfig:
    """Timeout settings in seconds."""

    summarizer: float = 60.0
    git_command: int = 30


@dataclass(frozen=True)
class RetentionConfig:
    """Retention periods."""

    logs_days: int = 7


@dataclass(frozen=True)
class SyncConfig:
    """Sync commit and layout settings."""

    source_dir: str = "docs"
    derived_dir: str = "llms"
    state_dir: str = ".llmsync"
    commit_message: str = "chore(llms): sync derived documents"
    trailer_key: str = "LLMS-Sync"
    trailer_value: str = "sync"
    category_weights: dict[str, int] = field(
        default_factory=lambda: {
            "guide": 80,
            "api": 75,
            "example": 75,
            "examples": 75,
            "concept": 50,
            "reference": 50,
        }
    )
    default_category_weight: int = 60


# Singleton configs
GENERATION = GenerationConfig()
THRESHOLDS = TierThresholds()
TIMEOUTS = TimeoutConfig()
RETENTION = RetentionConfig()
SYNC = SyncConfig()
