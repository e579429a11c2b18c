"""
assetry/runtime - Asset resolution.

- types: AssetSource, AssetMatch
- scoring: match scorer, search and merge
- catalog: IndexLoader (memoized, cached, time-bounded index fetch)
- install: install catalog assets into installed configuration
- selection: Disambiguator (interactive or deterministic choice)
- resolver: Resolver (tiered resolution)
- errors: ResolutionError hierarchy
"""

from .catalog import IndexLoader
from .errors import (
    AmbiguousAssetError,
    AssetNotFoundError,
    InstallError,
    ResolutionError,
    SelectionError,
)
from .install import install_asset
from .resolver import Resolver, find_exact_or_short, resolve_model_name
from .scoring import merge_matches, score_entry, search_entries, search_index
from .selection import Disambiguator
from .types import AssetMatch, AssetSource

__all__ = [
    "IndexLoader",
    "AmbiguousAssetError",
    "AssetNotFoundError",
    "InstallError",
    "ResolutionError",
    "SelectionError",
    "install_asset",
    "Resolver",
    "find_exact_or_short",
    "resolve_model_name",
    "merge_matches",
    "score_entry",
    "search_entries",
    "search_index",
    "Disambiguator",
    "AssetMatch",
    "AssetSource",
]
