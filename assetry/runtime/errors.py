"""
errors.py - Resolution error types.

Catalog failures during resolution are not errors here: they degrade to
"catalog unavailable" inside the index loader.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..registry.index import Category


class ResolutionError(Exception):
    """Base exception for asset resolution failures."""

    pass


class AssetNotFoundError(ResolutionError):
    """Raised when no tier produced a match."""

    def __init__(self, category: Category, query: str):
        self.category = Category(category)
        self.query = query
        super().__init__(f"{self.category.singular} {query!r} not found")


class AmbiguousAssetError(ResolutionError):
    """Raised when several assets match and nobody can choose between them."""

    def __init__(self, category: Category, query: str, candidates: Sequence[str], hint: str = ""):
        self.category = Category(category)
        self.query = query
        self.candidates: List[str] = list(candidates)
        msg = f"ambiguous {self.category.singular} {query!r} matches: {', '.join(self.candidates)}"
        if hint:
            msg += f"\n{hint}"
        super().__init__(msg)


class SelectionError(ResolutionError):
    """Raised when an interactive selection cannot be interpreted."""

    def __init__(self, selection: str, choices: int = 0):
        self.selection = selection
        self.choices = choices
        msg = f"invalid selection: {selection}"
        if choices and selection.strip().lstrip("-").isdigit():
            msg += f" (choose 1-{choices})"
        super().__init__(msg)


class InstallError(ResolutionError):
    """Raised when installing a catalog asset fails.

    Attributes:
        installed: Identities (e.g. "roles/go") written to the config before
            the failure. A task whose own install fails can leave its role
            dependency installed.
    """

    def __init__(self, name: str, reason: str, installed: Optional[List[str]] = None):
        self.name = name
        self.reason = reason
        self.installed: List[str] = list(installed or [])
        super().__init__(f"installing {name}: {reason}")
