"""
selection.py - Choosing one candidate from a merged match list.

Disambiguator is the only place that knows whether a human is present.
It is created once per session and shared by every resolution path.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from ..registry.index import Category
from .errors import AmbiguousAssetError, AssetNotFoundError, ResolutionError, SelectionError
from .types import AssetMatch

DEFAULT_MAX_DISPLAY = 20

NON_INTERACTIVE_HINT = "Specify exact name or run interactively"


class Disambiguator:
    """Selects a single candidate, prompting when interactive."""

    def __init__(
        self,
        interactive: bool,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        max_display: int = DEFAULT_MAX_DISPLAY,
    ):
        self.interactive = interactive
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.max_display = max(1, max_display)

    @classmethod
    def from_streams(
        cls,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        max_display: int = DEFAULT_MAX_DISPLAY,
    ) -> "Disambiguator":
        """Interactive only when stdin is a terminal."""
        stdin = stdin if stdin is not None else sys.stdin
        isatty = getattr(stdin, "isatty", None)
        interactive = bool(isatty and isatty())
        return cls(interactive, stdin, stdout, max_display)

    def select(self, matches: Sequence[AssetMatch], category: Category, query: str) -> AssetMatch:
        """Return exactly one match.

        Raises:
            AssetNotFoundError: No candidates.
            AmbiguousAssetError: Several candidates and no human to choose.
            SelectionError: The human's answer did not identify a candidate.
        """
        if not matches:
            raise AssetNotFoundError(category, query)
        if len(matches) == 1:
            return matches[0]
        if not self.interactive:
            raise AmbiguousAssetError(
                category, query, [m.name for m in matches], hint=NON_INTERACTIVE_HINT
            )
        return self._prompt(list(matches), Category(category), query)

    def _prompt(self, matches: Sequence[AssetMatch], category: Category, query: str) -> AssetMatch:
        shown = matches[: self.max_display]
        out = self.stdout

        out.write(f"Found {len(matches)} {category.singular}s matching {query!r}:\n\n")
        width = max(len(m.name) for m in shown)
        for i, m in enumerate(shown, start=1):
            out.write(f"  {i:2d}. {m.name.ljust(width)}  {m.source.value}\n")
        if len(shown) < len(matches):
            out.write(
                f"\nShowing {len(shown)} of {len(matches)} matches. "
                "Refine search for more specific results.\n"
            )
        out.write(f"\nSelect (1-{len(shown)}): ")
        out.flush()

        line = self.stdin.readline()
        if not line:
            raise ResolutionError("reading input: no selection entered")
        return choose(shown, line.strip())


def choose(shown: Sequence[AssetMatch], answer: str) -> AssetMatch:
    """Interpret a selection: 1-based index, exact name, or unique substring.

    Name comparisons are case-insensitive and only consider *shown*.
    """
    try:
        choice = int(answer)
    except ValueError:
        choice = None
    if choice is not None:
        if 1 <= choice <= len(shown):
            return shown[choice - 1]
        raise SelectionError(answer, len(shown))

    lower = answer.lower()
    if lower:
        for m in shown:
            if m.name.lower() == lower:
                return m
        partial = [m for m in shown if lower in m.name.lower()]
        if len(partial) == 1:
            return partial[0]
    raise SelectionError(answer)
