"""llmsync settings: defaults, settings file and environment overrides."""

from __future__ import annotations

import logging
from os import getenv
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from llmsync.core.constants import GENERATION, SYNC, THRESHOLDS, TIMEOUTS
from llmsync.core.enums import TruncationStrategy
from llmsync.core.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = ".llmsync.yaml"


class SyncSettings(BaseModel):
    """Effective settings for a generation-and-sync run.

    Paths are relative to the project root.
    """

    source_dir: str = SYNC.source_dir
    derived_dir: str = SYNC.derived_dir
    character_limits: list[int] = Field(
        default_factory=lambda: list(GENERATION.character_limits)
    )
    high_threshold: int = Field(default=THRESHOLDS.high, ge=0, le=100)
    medium_threshold: int = Field(default=THRESHOLDS.medium, ge=0, le=100)
    truncation: TruncationStrategy = TruncationStrategy.WORD
    max_workers: int = Field(default=GENERATION.max_workers, ge=1)
    summarizer_timeout: float = Field(default=TIMEOUTS.summarizer, gt=0)
    git_timeout: int = Field(default=TIMEOUTS.git_command, gt=0)
    commit_message: str = SYNC.commit_message
    category_weights: dict[str, int] = Field(
        default_factory=lambda: dict(SYNC.category_weights)
    )

    @field_validator("character_limits")
    @classmethod
    def _positive_unique_limits(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("at least one character limit is required")
        if any(limit <= 0 for limit in v):
            raise ValueError("character limits must be positive")
        return sorted(set(v))

    @field_validator("medium_threshold")
    @classmethod
    def _ordered_thresholds(cls, v: int, info: Any) -> int:
        high = info.data.get("high_threshold", THRESHOLDS.high)
        if v > high:
            raise ValueError("medium_threshold must not exceed high_threshold")
        return v


def _env_overrides() -> dict[str, Any]:
    """Collect LLMSYNC_* environment overrides."""
    overrides: dict[str, Any] = {}
    if source_dir := getenv("LLMSYNC_SOURCE_DIR"):
        overrides["source_dir"] = source_dir
    if derived_dir := getenv("LLMSYNC_DERIVED_DIR"):
        overrides["derived_dir"] = derived_dir
    if limits := getenv("LLMSYNC_CHARACTER_LIMITS"):
        try:
            overrides["character_limits"] = [
                int(part) for part in limits.split(",") if part.strip()
            ]
        except ValueError as e:
            raise ConfigError(f"Invalid LLMSYNC_CHARACTER_LIMITS: {limits}") from e
    if workers := getenv("LLMSYNC_MAX_WORKERS"):
        overrides["max_workers"] = workers
    return overrides


def load_settings(root: Path) -> SyncSettings:
    """Load settings from `.llmsync.yaml` under root, then apply env overrides.

    Args:
        root: Project root.

    Returns:
        Validated SyncSettings.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    data: dict[str, Any] = {}
    settings_path = root / SETTINGS_FILE
    if settings_path.exists():
        try:
            loaded = yaml.safe_load(settings_path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {settings_path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"{settings_path} must contain a mapping")
        data.update(loaded or {})
        logger.debug("Loaded settings from %s", settings_path)

    data.update(_env_overrides())

    try:
        return SyncSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
