"""
store.py - Installed-configuration store.

Installed assets live in one YAML file per category inside each config
directory:

    ~/.config/assetry/agents.yaml
    ~/.config/assetry/roles.yaml
    ./.assetry/contexts.yaml
    ...

Each file holds a single top-level mapping keyed by category:

    roles:
      golang/assistant:
        origin: github.com/acme/assets/roles/golang/assistant@v0.1.0
        description: Go programming assistant
        tags: [go]
        prompt: ...

Loading merges global then local directories; a local definition replaces
a global one with the same name. Installing never overwrites: an existing
name raises DuplicateAssetError.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..registry.index import Category, IndexEntry
from .paths import ConfigPaths, Scope

logger = logging.getLogger(__name__)

CATEGORY_FILES: Dict[Category, str] = {
    Category.AGENTS: "agents.yaml",
    Category.ROLES: "roles.yaml",
    Category.CONTEXTS: "contexts.yaml",
    Category.TASKS: "tasks.yaml",
}

_FILE_HEADER = "# assetry configuration\n# Managed by assetry; installed assets are appended below.\n"


class DuplicateAssetError(Exception):
    """Raised when installing a name that already exists."""

    def __init__(self, category: Category, name: str, path: Path):
        self.category = category
        self.name = name
        self.path = path
        super().__init__(f"{Category(category).singular} '{name}' already exists in {path}")


@dataclass
class InstalledConfig:
    """Merged, read-only view of installed assets."""

    assets: Dict[Category, Dict[str, Dict[str, Any]]] = field(
        default_factory=lambda: {category: {} for category in Category}
    )

    def names(self, category: Category) -> List[str]:
        return sorted(self.assets.get(Category(category), {}))

    def has(self, category: Category, name: str) -> bool:
        return name in self.assets.get(Category(category), {})

    def get(self, category: Category, name: str) -> Optional[Dict[str, Any]]:
        return self.assets.get(Category(category), {}).get(name)

    def origin(self, category: Category, name: str) -> str:
        """The ``origin`` reference recorded at install time, or ""."""
        definition = self.get(category, name) or {}
        origin = definition.get("origin", "")
        return origin if isinstance(origin, str) else ""

    def entry(self, category: Category, name: str) -> IndexEntry:
        """Scoring view of an installed definition (origin acts as module)."""
        definition = self.get(category, name) or {}
        tags = definition.get("tags") or ()
        description = definition.get("description", "")
        return IndexEntry(
            module=self.origin(category, name),
            description=description if isinstance(description, str) else "",
            tags=tuple(str(t) for t in tags) if isinstance(tags, (list, tuple)) else (),
        )

    def entries(self, category: Category) -> Dict[str, IndexEntry]:
        return {name: self.entry(category, name) for name in self.names(category)}


def _read_category_file(path: Path, category: Category) -> Dict[str, Dict[str, Any]]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid YAML in config file {path}: {e}") from e

    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    section = data.get(category.value) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{category.value}' in {path} must be a mapping")

    result: Dict[str, Dict[str, Any]] = {}
    for name, definition in section.items():
        if not isinstance(definition, dict):
            logger.warning("Skipping %s '%s' in %s: definition is not a mapping",
                           category.singular, name, path)
            continue
        result[str(name)] = definition
    return result


def _atomic_write_text(path: Path, text: str) -> None:
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(suffix=".tmp", prefix=path.name + ".", dir=parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class InstalledConfigStore:
    """Reads and extends installed configuration on disk."""

    def __init__(self, paths: ConfigPaths, scope: Scope = Scope.MERGED):
        self.paths = paths
        self.scope = scope

    def config_file(self, category: Category, config_dir: Optional[Path] = None) -> Path:
        return (config_dir or self.paths.global_dir) / CATEGORY_FILES[Category(category)]

    def load(self) -> InstalledConfig:
        """Load the merged view for the store's scope.

        Raises:
            ValueError: If a config file is malformed.
        """
        config = InstalledConfig()
        for config_dir in self.paths.for_scope(self.scope):
            for category in Category:
                config.assets[category].update(
                    _read_category_file(self.config_file(category, config_dir), category)
                )
        return config

    def install(
        self,
        category: Category,
        name: str,
        content: Dict[str, Any],
        config_dir: Optional[Path] = None,
    ) -> Path:
        """Persist a new asset definition.

        Args:
            category: Asset category.
            name: Asset name.
            content: Definition mapping (origin first by convention).
            config_dir: Target directory (default: global config).

        Returns:
            Path of the written config file.

        Raises:
            DuplicateAssetError: If *name* already exists in the target file.
        """
        category = Category(category)
        path = self.config_file(category, config_dir)

        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file {path} must contain a mapping")

        section = data.setdefault(category.value, {}) or {}
        if name in section:
            raise DuplicateAssetError(category, name, path)
        section[name] = dict(content)
        data[category.value] = section

        body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        _atomic_write_text(path, _FILE_HEADER + body)
        logger.debug("Installed %s '%s' into %s", category.singular, name, path)
        return path
