"""
types.py - Resolution candidate types.

Installed and catalog candidates share one shape; AssetSource tags the
provenance so scoring, merging and disambiguation treat both alike.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from ..registry.index import Category, IndexEntry


class AssetSource(str, Enum):
    """Where a candidate was found."""

    INSTALLED = "installed"
    CATALOG = "catalog"


@dataclass(frozen=True)
class AssetMatch:
    """A resolution candidate.

    Attributes:
        name: Asset name.
        category: Asset category.
        source: Provenance (installed or catalog).
        entry: Index entry (for installed assets, built from the definition).
        score: Relevance score from the match scorer (0 for exact lookups).
    """

    name: str
    category: Category
    source: AssetSource
    entry: IndexEntry = field(default_factory=IndexEntry)
    score: int = 0

    @property
    def identity(self) -> str:
        return f"{self.category.value}/{self.name}"

    @property
    def from_catalog(self) -> bool:
        return self.source == AssetSource.CATALOG


def asset_match_to_dict(match: AssetMatch) -> Dict[str, Any]:
    """Convert an AssetMatch to a dictionary for JSON output."""
    return {
        "name": match.name,
        "category": match.category.value,
        "source": match.source.value,
        "module": match.entry.module,
        "description": match.entry.description,
        "tags": list(match.entry.tags),
        "score": match.score,
    }
