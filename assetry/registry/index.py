"""
index.py - Catalog index model and loading.

The index is the catalog's manifest: for each category it maps an asset
name (conventionally ``namespace/short-name``) to an IndexEntry that points
at the module publishing the asset.

The index module ships an ``index.yaml`` document:

    agents:
      ai/claude:
        module: github.com/acme/assets/agents/ai/claude@v0
        description: Anthropic Claude CLI
        tags: [anthropic, cli]
        version: v0.2.0
        bin: claude
    roles: {}
    contexts: {}
    tasks: {}

The document is validated against INDEX_SCHEMA with jsonschema before it is
decoded, so a corrupt index fails loudly instead of producing empty entries.

Usage:
    from assetry.registry.index import Category, load_index

    index = load_index(fetch_result.source_dir)
    entries = index.entries(Category.ROLES)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import jsonschema
import yaml

from .versions import module_of

logger = logging.getLogger(__name__)

INDEX_FILE = "index.yaml"


class Category(str, Enum):
    """Asset categories, in display order."""

    AGENTS = "agents"
    ROLES = "roles"
    CONTEXTS = "contexts"
    TASKS = "tasks"

    @property
    def singular(self) -> str:
        """Singular label used in messages and module files ("agent")."""
        return self.value[:-1]

    @property
    def order(self) -> int:
        return list(Category).index(self)

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Parse a category from its plural or singular name (case-insensitive)."""
        text = (value or "").strip().lower()
        for category in cls:
            if text in (category.value, category.singular):
                return category
        raise ValueError(
            f"unknown category {value!r} (expected one of: "
            f"{', '.join(c.value for c in cls)})"
        )


_ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["module"],
    "properties": {
        "module": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "version": {"type": "string"},
        "bin": {"type": "string"},
    },
}

INDEX_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        category.value: {
            "type": "object",
            "additionalProperties": _ENTRY_SCHEMA,
        }
        for category in Category
    },
}


class IndexLoadError(ValueError):
    """Raised when an index document is missing or fails schema validation."""


@dataclass(frozen=True)
class IndexEntry:
    """Catalog-published description of one asset.

    Attributes:
        module: Module reference (``path@version`` or bare path).
        description: Free-text description.
        tags: Tags attached to the asset.
        version: Version declared by the index ("" when not declared).
        bin: Executable name (agents only).
    """

    module: str = ""
    description: str = ""
    tags: Tuple[str, ...] = ()
    version: str = ""
    bin: str = ""


@dataclass
class Index:
    """The full asset index, one name → entry mapping per category."""

    agents: Dict[str, IndexEntry] = field(default_factory=dict)
    roles: Dict[str, IndexEntry] = field(default_factory=dict)
    contexts: Dict[str, IndexEntry] = field(default_factory=dict)
    tasks: Dict[str, IndexEntry] = field(default_factory=dict)

    def entries(self, category: Category) -> Dict[str, IndexEntry]:
        """Return the entries for *category*."""
        return getattr(self, Category(category).value)

    def get(self, category: Category, name: str) -> Optional[IndexEntry]:
        return self.entries(category).get(name)

    def items(self) -> Iterator[Tuple[Category, Dict[str, IndexEntry]]]:
        """Iterate ``(category, entries)`` pairs in display order."""
        for category in Category:
            yield category, self.entries(category)

    def entry_count(self) -> int:
        """Total number of entries across all categories."""
        return sum(len(entries) for _, entries in self.items())

    def find_by_module(self, category: Category, module: str) -> Optional[Tuple[str, IndexEntry]]:
        """Find the entry in *category* whose module identity matches *module*.

        Version suffixes are ignored on both sides.
        """
        wanted = module_of(module)
        entries = self.entries(category)
        for name in sorted(entries):
            if module_of(entries[name].module) == wanted:
                return name, entries[name]
        return None


def index_entry_from_dict(data: Dict[str, Any]) -> IndexEntry:
    """Parse an IndexEntry from a dictionary (e.g., YAML load)."""
    return IndexEntry(
        module=data.get("module", "") or "",
        description=data.get("description", "") or "",
        tags=tuple(data.get("tags") or ()),
        version=data.get("version", "") or "",
        bin=data.get("bin", "") or "",
    )


def index_entry_to_dict(entry: IndexEntry) -> Dict[str, Any]:
    """Convert an IndexEntry to a dictionary, omitting empty optional fields."""
    result: Dict[str, Any] = {"module": entry.module}
    if entry.description:
        result["description"] = entry.description
    if entry.tags:
        result["tags"] = list(entry.tags)
    if entry.version:
        result["version"] = entry.version
    if entry.bin:
        result["bin"] = entry.bin
    return result


def index_from_dict(data: Optional[Dict[str, Any]]) -> Index:
    """Validate and decode an index document.

    Raises:
        IndexLoadError: If the document does not match INDEX_SCHEMA.
    """
    data = data or {}
    try:
        jsonschema.validate(instance=data, schema=INDEX_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise IndexLoadError(f"invalid index at {location}: {e.message}") from e

    index = Index()
    for category in Category:
        target = index.entries(category)
        for name, entry_data in (data.get(category.value) or {}).items():
            target[str(name)] = index_entry_from_dict(entry_data)
    return index


def index_to_dict(index: Index) -> Dict[str, Any]:
    """Convert an Index to a document suitable for ``index.yaml``."""
    return {
        category.value: {
            name: index_entry_to_dict(entry)
            for name, entry in sorted(entries.items())
        }
        for category, entries in index.items()
    }


def load_index(source_dir: Path) -> Index:
    """Load the index from a fetched index module directory.

    Args:
        source_dir: Directory containing ``index.yaml``.

    Raises:
        IndexLoadError: If the file is missing, unparsable or invalid.
    """
    path = Path(source_dir) / INDEX_FILE
    if not path.exists():
        raise IndexLoadError(f"no {INDEX_FILE} found in {source_dir}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise IndexLoadError(f"Invalid YAML in index {path}: {e}") from e

    index = index_from_dict(data)
    logger.debug("Loaded index from %s (%d entries)", path, index.entry_count())
    return index
