"""
Engine configuration.

Settings live in an ``EngineConfig`` model that can be loaded from a JSON
file and overridden through ``LEARNPATH_<FIELD>`` environment variables::

    {
      "mastery_threshold": 0.8,
      "struggle_threshold": 0.6,
      "history_cap": 20,
      "db_path": "./data/progress.db"
    }
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from learnpath.errors import ConfigError
from learnpath.models import SkillLevel

logger = logging.getLogger(__name__)

ENV_PREFIX = "LEARNPATH_"


class EngineConfig(BaseModel):
    """Tunable thresholds and resource locations."""

    # Progress thresholds
    mastery_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    struggle_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    default_skill_level: SkillLevel = "intermediate"

    # Difficulty adaptation
    default_difficulty: float = Field(default=5.0, ge=1.0, le=10.0)
    min_difficulty: float = Field(default=1.0, ge=1.0, le=10.0)
    max_difficulty: float = Field(default=10.0, ge=1.0, le=10.0)
    performance_window: int = Field(default=5, ge=1)
    history_cap: int = Field(default=20, ge=1)

    # Completion-time smoothing (exponential moving average)
    completion_time_alpha: float = Field(default=0.3, gt=0.0, le=1.0)

    # Resources
    dataset_path: Optional[str] = None
    db_path: Optional[str] = None
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_ranges(self) -> "EngineConfig":
        if self.struggle_threshold > self.mastery_threshold:
            raise ValueError("struggle_threshold must not exceed mastery_threshold")
        if self.min_difficulty > self.max_difficulty:
            raise ValueError("min_difficulty must not exceed max_difficulty")
        if self.history_cap < self.performance_window:
            raise ValueError("history_cap must be at least performance_window")
        return self


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in EngineConfig.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            overrides[name] = environ[key]
    return overrides


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Build an ``EngineConfig`` from an optional JSON file plus env vars.

    Args:
        path: JSON file with any subset of ``EngineConfig`` fields.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file cannot be read or a value is invalid.
    """
    data: Dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a JSON object.")
        logger.info("Loaded config ← %s", path)

    data.update(_env_overrides(os.environ if environ is None else environ))

    try:
        return EngineConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def save_config(config: EngineConfig, path: str) -> None:
    """Write *config* to *path* as indented JSON."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config.model_dump(), fh, indent=2)
    logger.info("Config saved → %s", path)
