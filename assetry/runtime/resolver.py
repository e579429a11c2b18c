"""
resolver.py - Tiered asset resolution with lazy catalog access.

Resolver.resolve(category, query) tries, in order, stopping at the first
tier that produces an answer:

    1. File path bypass (roles only): "./x.md", "/abs", "~/x" returned as-is.
    2. Installed exact name, or unique short name (suffix after the last
       "/"). Two or more short-name matches raise AmbiguousAssetError.
    3. Installed scored search. Exactly one match is returned without
       touching the catalog.
    4. Catalog exact / unique short name, only when tier 3 found nothing.
       The match is installed, then returned.
    5. Installed and catalog scored matches merged (installed wins a name
       collision), handed to the Disambiguator, installed if catalog-sourced.

The catalog index is fetched at most once per Resolver via IndexLoader, and
an unavailable catalog simply contributes no candidates. After every
install the installed configuration is reloaded and ``did_install`` is set.

Usage:
    from assetry.runtime.resolver import Resolver

    resolver = Resolver.from_settings(settings, paths)
    name = resolver.resolve(Category.ROLES, "golang")
    if resolver.did_install:
        ...
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, TextIO

from ..config.paths import ConfigPaths, cache_dir, is_file_path
from ..config.settings import ScoreWeights, Settings
from ..config.store import InstalledConfig, InstalledConfigStore
from ..registry.cache import IndexCache
from ..registry.client import CatalogClient, CatalogError, FilesystemCatalogClient
from ..registry.index import Category, IndexEntry
from .catalog import IndexLoader
from .errors import AmbiguousAssetError, InstallError
from .install import install_asset
from .scoring import merge_matches, parse_search_terms, search_entries
from .selection import Disambiguator
from .types import AssetMatch, AssetSource

logger = logging.getLogger(__name__)

# Context term that always passes through to the caller untouched
DEFAULT_CONTEXT_TERM = "default"

DEFAULT_CONTEXT_THRESHOLD = 2


# =============================================================================
# Matching helpers
# =============================================================================


def short_name(name: str) -> str:
    """Suffix after the last "/" ("golang/assistant" -> "assistant")."""
    return name.rsplit("/", 1)[-1]


def find_exact_or_short(names: Iterable[str], category: Category, query: str) -> Optional[str]:
    """Find *query* as a full name or as the unique short name.

    Raises:
        AmbiguousAssetError: If two or more names share the short name.
    """
    names = list(names)
    if query in names:
        return query
    hits = sorted(n for n in names if "/" in n and short_name(n) == query)
    if len(hits) > 1:
        raise AmbiguousAssetError(category, query, hits)
    return hits[0] if hits else None


def resolve_model_name(query: str, models: Mapping[str, object]) -> str:
    """Resolve a model alias against an agent's models map.

    Exact key first, then keys matching every query term as a substring.
    A single match wins; otherwise the query is passed through unchanged.
    """
    if not query:
        return ""
    if query in models:
        logger.debug("Model %r: exact match", query)
        return query

    terms = parse_search_terms(query)
    if not terms:
        return query
    matches = sorted(k for k in models if all(t in k.lower() for t in terms))
    if len(matches) == 1:
        logger.debug("Model %r: match %r", query, matches[0])
        return matches[0]
    if matches:
        logger.debug("Model %r: multiple matches %s, passing through", query, matches)
    else:
        logger.debug("Model %r: no match, passing through", query)
    return query


# =============================================================================
# Resolver
# =============================================================================


class Resolver:
    """One resolution session.

    Holds the installed configuration, the memoized index loader and the
    disambiguation capability. Not shared between concurrent callers.
    """

    def __init__(
        self,
        store: InstalledConfigStore,
        loader: IndexLoader,
        disambiguator: Disambiguator,
        weights: Optional[ScoreWeights] = None,
        context_threshold: int = DEFAULT_CONTEXT_THRESHOLD,
        quiet: bool = False,
        stdout: Optional[TextIO] = None,
        install_dir: Optional[Path] = None,
    ):
        self.store = store
        self.loader = loader
        self.disambiguator = disambiguator
        self.weights = weights or ScoreWeights()
        self.context_threshold = context_threshold
        self.quiet = quiet
        self.stdout = stdout if stdout is not None else sys.stdout
        self.install_dir = install_dir
        self.did_install = False
        self.config: InstalledConfig = store.load()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        paths: ConfigPaths,
        quiet: bool = False,
        interactive: Optional[bool] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        client_factory: Optional[Callable[[], CatalogClient]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Resolver":
        """Wire a Resolver from settings and config paths."""
        stdout = stdout if stdout is not None else sys.stdout

        if client_factory is None:
            def client_factory() -> CatalogClient:
                if settings.catalog_root is None:
                    raise CatalogError("no catalog configured (set catalog_root)")
                return FilesystemCatalogClient(settings.catalog_root)

        def warn(message: str) -> None:
            if not quiet:
                stdout.write(message + "\n")
                stdout.flush()

        loader = IndexLoader(
            settings.index_module,
            client_factory,
            cache=IndexCache.in_dir(cache_dir(env)),
            max_age=settings.cache_max_age,
            timeout=settings.fetch_timeout_seconds,
            slow_warning_after=settings.slow_fetch_warning_seconds,
            warn=warn,
        )
        if interactive is None:
            disambiguator = Disambiguator.from_streams(stdin, stdout, settings.max_display_results)
        else:
            disambiguator = Disambiguator(interactive, stdin, stdout, settings.max_display_results)

        return cls(
            InstalledConfigStore(paths),
            loader,
            disambiguator,
            weights=settings.score_weights,
            context_threshold=settings.context_score_threshold,
            quiet=quiet,
            stdout=stdout,
        )

    # -------------------------------------------------------------------------
    # Single-asset resolution
    # -------------------------------------------------------------------------

    def resolve(self, category: Category, query: str) -> str:
        """Resolve *query* to one installed asset name.

        Returns:
            The resolved name (or the query itself for a role file path).

        Raises:
            AssetNotFoundError: Nothing matched.
            AmbiguousAssetError: Ambiguous short name, or several matches
                with no human to choose.
            SelectionError: Interactive answer did not identify a match.
            InstallError: The chosen catalog asset could not be installed.
        """
        category = Category.parse(category)
        if not query:
            return ""
        label = category.singular.capitalize()

        if category == Category.ROLES and is_file_path(query):
            logger.debug("%s %r: file path bypass", label, query)
            return query

        name = find_exact_or_short(self.config.names(category), category, query)
        if name is not None:
            logger.debug("%s %r: installed match %r", label, query, name)
            return name

        installed = self._search_installed(category, query)
        if len(installed) == 1:
            logger.debug("%s %r: single installed match %r", label, query, installed[0].name)
            return installed[0].name

        self._say(f"{label} {query!r} not found in configuration")
        index = self.loader.ensure_index()

        if not installed and index is not None:
            entries = index.entries(category)
            name = find_exact_or_short(entries, category, query)
            if name is not None:
                logger.debug("%s %r: catalog match %r", label, query, name)
                match = AssetMatch(name, category, AssetSource.CATALOG, entries[name])
                self._install(match)
                return name

        catalog: List[AssetMatch] = []
        if index is not None:
            catalog = search_entries(
                category, index.entries(category), query, AssetSource.CATALOG, weights=self.weights
            )
        merged = merge_matches(installed, catalog)
        logger.debug("%s %r: %d installed, %d catalog, %d total matches",
                     label, query, len(installed), len(catalog), len(merged))

        selected = self.disambiguator.select(merged, category, query)
        if selected.from_catalog:
            self._install(selected)
        return selected.name

    def resolve_agent(self, query: str) -> str:
        return self.resolve(Category.AGENTS, query)

    def resolve_role(self, query: str) -> str:
        return self.resolve(Category.ROLES, query)

    def resolve_task(self, query: str) -> str:
        return self.resolve(Category.TASKS, query)

    def resolve_model(self, query: str, models: Mapping[str, object]) -> str:
        return resolve_model_name(query, models)

    # -------------------------------------------------------------------------
    # Context lists
    # -------------------------------------------------------------------------

    def resolve_contexts(self, terms: Sequence[str]) -> List[str]:
        """Resolve each context term independently.

        Per term: file path and ``default`` pass through; installed exact or
        short name; catalog exact or short name (installed); otherwise every
        merged match scoring at least the context threshold is included,
        catalog ones installed first (failed installs are skipped). A term
        with no qualifying match passes through unchanged so the caller can
        warn about it later.
        """
        resolved: List[str] = []
        for term in terms:
            for name in self._resolve_context_term(term):
                if name not in resolved:
                    resolved.append(name)
        return resolved

    def _resolve_context_term(self, term: str) -> List[str]:
        category = Category.CONTEXTS
        if is_file_path(term):
            logger.debug("Context %r: file path bypass", term)
            return [term]
        if term == DEFAULT_CONTEXT_TERM:
            logger.debug("Context %r: default passthrough", term)
            return [term]

        name = self._exact_or_none(self.config.names(category), term)
        if name is not None:
            logger.debug("Context %r: installed match %r", term, name)
            return [name]

        self._say(f"Context {term!r} not found in configuration")
        index = self.loader.ensure_index()
        if index is not None:
            entries = index.entries(category)
            name = self._exact_or_none(entries, term)
            if name is not None:
                try:
                    self._install(AssetMatch(name, category, AssetSource.CATALOG, entries[name]))
                    return [name]
                except InstallError as e:
                    logger.debug("Context %r: install of %r failed: %s", term, name, e)

        installed = self._search_installed(category, term)
        catalog: List[AssetMatch] = []
        if index is not None:
            catalog = search_entries(
                category, index.entries(category), term, AssetSource.CATALOG, weights=self.weights
            )
        qualified = [
            m for m in merge_matches(installed, catalog) if m.score >= self.context_threshold
        ]
        logger.debug("Context %r: %d matches above threshold", term, len(qualified))
        if not qualified:
            return [term]

        names: List[str] = []
        for match in qualified:
            if match.from_catalog:
                try:
                    self._install(match)
                except InstallError as e:
                    logger.debug("Context %r: skipping %r: %s", term, match.name, e)
                    continue
            names.append(match.name)
        return names or [term]

    def _exact_or_none(self, names: Iterable[str], term: str) -> Optional[str]:
        try:
            return find_exact_or_short(names, Category.CONTEXTS, term)
        except AmbiguousAssetError as e:
            logger.debug("Context %r: %s; searching instead", term, e)
            return None

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    def reload_config(self) -> InstalledConfig:
        """Re-read installed configuration from disk."""
        self.config = self.store.load()
        return self.config

    def _search_installed(self, category: Category, query: str) -> List[AssetMatch]:
        entries: Mapping[str, IndexEntry] = self.config.entries(category)
        return search_entries(category, dict(entries), query, AssetSource.INSTALLED, weights=self.weights)

    def _install(self, match: AssetMatch) -> None:
        self._say(f"Installing {match.name} from catalog...")
        try:
            install_asset(
                self.loader.get_client(),
                self.loader.ensure_index(),
                match,
                self.store,
                self.install_dir,
            )
        except InstallError as e:
            if e.installed:
                logger.debug("Partial install before failure: %s", ", ".join(e.installed))
                self.did_install = True
                self.reload_config()
            raise
        self._say(f"Installed {match.name} to global config\n")
        self.did_install = True
        self.reload_config()

    def _say(self, message: str) -> None:
        if not self.quiet:
            self.stdout.write(message + "\n")
            self.stdout.flush()
