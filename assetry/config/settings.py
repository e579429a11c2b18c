"""
settings.py - Tool settings with layered resolution.

Settings are read from ``settings.yaml`` in the global and local config
directories and from the environment. Precedence (highest first):

1. Environment variables (ASSETRY_INDEX_MODULE, ASSETRY_CATALOG_ROOT,
   ASSETRY_CACHE_MAX_AGE_HOURS)
2. Local settings (./.assetry/settings.yaml)
3. Global settings (~/.config/assetry/settings.yaml)
4. Defaults

Scoring weights and the context inclusion threshold are policy constants
kept for behaviour compatibility; they are configurable but the defaults
should not be re-tuned.

Usage:
    from assetry.config.settings import load_settings

    settings = load_settings(resolve_paths())
    settings.index_module   # "github.com/assetry/assets/index@v0"
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import ConfigPaths

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.yaml"

DEFAULT_INDEX_MODULE = "github.com/assetry/assets/index@v0"

ENV_INDEX_MODULE = "ASSETRY_INDEX_MODULE"
ENV_CATALOG_ROOT = "ASSETRY_CATALOG_ROOT"
ENV_CACHE_MAX_AGE = "ASSETRY_CACHE_MAX_AGE_HOURS"


class ScoreWeights(BaseModel):
    """Per-field weights used by the match scorer."""

    name: int = Field(default=3, ge=0)
    module: int = Field(default=2, ge=0)
    description: int = Field(default=1, ge=0)
    tag: int = Field(default=1, ge=0)


class Settings(BaseModel):
    """Effective tool settings."""

    index_module: str = Field(
        default=DEFAULT_INDEX_MODULE,
        description="Catalog index module reference (path@major)",
    )
    catalog_root: Optional[Path] = Field(
        default=None,
        description="Root of the mirrored catalog tree",
    )
    cache_max_age_hours: float = Field(default=24.0, gt=0)
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    slow_fetch_warning_seconds: float = Field(default=3.0, ge=0)
    score_weights: ScoreWeights = Field(default_factory=ScoreWeights)
    context_score_threshold: int = Field(default=2, ge=0)
    max_display_results: int = Field(default=20, ge=1)
    default_branch: str = Field(default="main")

    @field_validator("index_module")
    @classmethod
    def validate_index_module(cls, v: str) -> str:
        """Require a non-empty module path; default the major selector."""
        v = v.strip()
        if not v or v.startswith("@"):
            raise ValueError("index_module must be a module path such as 'host/owner/repo/index@v0'")
        if "@" not in v:
            v += "@v0"
        return v

    @property
    def cache_max_age(self) -> timedelta:
        return timedelta(hours=self.cache_max_age_hours)


def _load_settings_file(path: Path) -> Dict[str, Any]:
    """Load one settings.yaml; missing or invalid files yield {}."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected a mapping", path)
        return {}
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if env.get(ENV_INDEX_MODULE):
        overrides["index_module"] = env[ENV_INDEX_MODULE]
    if env.get(ENV_CATALOG_ROOT):
        overrides["catalog_root"] = env[ENV_CATALOG_ROOT]
    if env.get(ENV_CACHE_MAX_AGE):
        overrides["cache_max_age_hours"] = env[ENV_CACHE_MAX_AGE]
    return overrides


def load_settings(
    paths: Optional[ConfigPaths] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Resolve settings from files and environment.

    Raises:
        ValueError: If the combined settings fail validation.
    """
    env = os.environ if env is None else env
    data: Dict[str, Any] = {}
    if paths is not None:
        for config_dir in (paths.global_dir, paths.local_dir):
            data = _merge(data, _load_settings_file(config_dir / SETTINGS_FILE))
    data = _merge(data, _env_overrides(env))

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"invalid settings: {e}") from e
