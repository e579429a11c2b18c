"""
scoring.py - Match scorer shared by installed-config and catalog search.

A query is split into terms on whitespace and commas. Every term must match
at least one field of a candidate (AND semantics); the score is the sum of
per-term field weights:

    name substring           3
    module path substring    2
    description substring    1
    each matching tag        1

A score of 0 means "no match". Matching is case-insensitive substring
matching only.

Usage:
    from assetry.runtime.scoring import score_entry, search_entries, merge_matches

    score = score_entry("golang/assistant", entry, "go")
    matches = search_entries(Category.ROLES, index.roles, "go", AssetSource.CATALOG)
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from ..config.settings import ScoreWeights
from ..registry import versions
from ..registry.index import Category, Index, IndexEntry
from .types import AssetMatch, AssetSource

DEFAULT_WEIGHTS = ScoreWeights()


def parse_search_terms(text: str) -> List[str]:
    """Split *text* into unique lower-cased terms (whitespace/comma separated)."""
    seen = set()
    terms: List[str] = []
    for part in (text or "").replace(",", " ").split():
        lower = part.lower()
        if lower not in seen:
            seen.add(lower)
            terms.append(lower)
    return terms


def matches_all_terms(value: str, terms: Sequence[str]) -> bool:
    """True if every term is a substring of *value* (case-insensitive)."""
    lower = value.lower()
    return all(term in lower for term in terms)


def matches_any_tag(entry_tags: Iterable[str], filter_tags: Iterable[str]) -> bool:
    """True if any entry tag equals any filter tag (case-insensitive)."""
    wanted = {t.lower() for t in filter_tags}
    return any(tag.lower() in wanted for tag in entry_tags)


def _term_score(term: str, name: str, entry: IndexEntry, weights: ScoreWeights) -> int:
    score = 0
    if term in name.lower():
        score += weights.name
    if entry.module and term in versions.module_of(entry.module).lower():
        score += weights.module
    if term in entry.description.lower():
        score += weights.description
    for tag in entry.tags:
        if term in tag.lower():
            score += weights.tag
    return score


def score_entry(
    name: str,
    entry: IndexEntry,
    query: str,
    weights: Optional[ScoreWeights] = None,
) -> int:
    """Relevance of a candidate for *query*; 0 means no match."""
    weights = weights or DEFAULT_WEIGHTS
    terms = parse_search_terms(query)
    if not terms:
        return 0

    total = 0
    for term in terms:
        term_score = _term_score(term, name, entry, weights)
        if term_score == 0:
            return 0
        total += term_score
    return total


def _sort_key(match: AssetMatch):
    return (-match.score, match.name)


def search_entries(
    category: Category,
    entries: Dict[str, IndexEntry],
    query: str,
    source: AssetSource,
    tags: Optional[Sequence[str]] = None,
    weights: Optional[ScoreWeights] = None,
) -> List[AssetMatch]:
    """Score every entry of one category; return matches by score, then name.

    With *tags*, entries must also carry one of the tags. Tags alone (empty
    query) select every entry with a matching tag at score 1.
    """
    has_terms = bool(parse_search_terms(query))
    tags = list(tags or ())
    if not has_terms and not tags:
        return []

    results: List[AssetMatch] = []
    for name, entry in entries.items():
        if tags and not matches_any_tag(entry.tags, tags):
            continue
        score = score_entry(name, entry, query, weights) if has_terms else 1
        if score > 0:
            results.append(AssetMatch(
                name=name,
                category=Category(category),
                source=source,
                entry=entry,
                score=score,
            ))

    results.sort(key=_sort_key)
    return results


def search_index(
    index: Optional[Index],
    query: str,
    tags: Optional[Sequence[str]] = None,
    weights: Optional[ScoreWeights] = None,
) -> List[AssetMatch]:
    """Search every category of the index.

    Results are sorted by score (descending), category order, then name.
    """
    if index is None:
        return []
    results: List[AssetMatch] = []
    for category, entries in index.items():
        results.extend(search_entries(category, entries, query, AssetSource.CATALOG, tags, weights))
    results.sort(key=lambda m: (-m.score, m.category.order, m.name))
    return results


def merge_matches(installed: Sequence[AssetMatch], catalog: Sequence[AssetMatch]) -> List[AssetMatch]:
    """Combine installed and catalog matches.

    Deduplicates by name with the installed match (and its score) winning;
    sorted by score descending, then name ascending.
    """
    seen = set()
    merged: List[AssetMatch] = []
    for match in installed:
        seen.add(match.name)
        merged.append(match)
    for match in catalog:
        if match.name not in seen:
            seen.add(match.name)
            merged.append(match)
    merged.sort(key=_sort_key)
    return merged
