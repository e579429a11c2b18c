"""
paths.py - Configuration and cache directory discovery.

Layout:
    global config:  $XDG_CONFIG_HOME/assetry  (default ~/.config/assetry)
    local config:   <working dir>/.assetry
    cache:          $XDG_CACHE_HOME/assetry   (default ~/.cache/assetry)

Local configuration takes precedence over global configuration when the
two are merged.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

APP_NAME = "assetry"
LOCAL_DIR_NAME = ".assetry"


class Scope(str, Enum):
    """Which configuration directories to load."""

    MERGED = "merged"
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class ConfigPaths:
    """Resolved configuration directories."""

    global_dir: Path
    local_dir: Path

    @property
    def global_exists(self) -> bool:
        return self.global_dir.is_dir()

    @property
    def local_exists(self) -> bool:
        return self.local_dir.is_dir()

    def for_scope(self, scope: Scope = Scope.MERGED) -> List[Path]:
        """Existing directories for *scope*, lowest priority first."""
        if scope == Scope.GLOBAL:
            return [self.global_dir] if self.global_exists else []
        if scope == Scope.LOCAL:
            return [self.local_dir] if self.local_exists else []
        dirs = []
        if self.global_exists:
            dirs.append(self.global_dir)
        if self.local_exists:
            dirs.append(self.local_dir)
        return dirs

    def any_exists(self) -> bool:
        return self.global_exists or self.local_exists


def _xdg_dir(env: Mapping[str, str], var: str, fallback: str) -> Path:
    value = env.get(var)
    if value:
        return Path(value) / APP_NAME
    return Path.home() / fallback / APP_NAME


def global_config_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    """Global config directory, honouring XDG_CONFIG_HOME."""
    return _xdg_dir(os.environ if env is None else env, "XDG_CONFIG_HOME", ".config")


def cache_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    """Cache directory, honouring XDG_CACHE_HOME."""
    return _xdg_dir(os.environ if env is None else env, "XDG_CACHE_HOME", ".cache")


def resolve_paths(
    working_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ConfigPaths:
    """Discover configuration directories.

    Args:
        working_dir: Base directory for the local config (default: cwd).
        env: Environment mapping (default: os.environ).
    """
    base = Path(working_dir) if working_dir is not None else Path.cwd()
    return ConfigPaths(
        global_dir=global_config_dir(env),
        local_dir=base / LOCAL_DIR_NAME,
    )


def is_file_path(value: str) -> bool:
    """True if *value* looks like a file path rather than an asset name.

    Strings starting with ``./``, ``/`` or ``~`` are file paths.
    """
    if not value:
        return False
    return value.startswith(("./", "/", "~"))
