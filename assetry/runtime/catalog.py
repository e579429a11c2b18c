"""
catalog.py - Lazy, memoized catalog index loading for a resolver session.

IndexLoader.ensure_index() runs at most once per session; later calls
return the first outcome, including "unavailable" (None).

Fetch algorithm:
    1. Fast path: if the cache record is fresh and was written for the
       configured index module, fetch that version directly (no version
       resolution, no cache write).
    2. Otherwise (or if the fast path fails): resolve the configured
       reference to the latest version, fetch, load, and record the
       resolved version in the cache.

Every failure degrades to "catalog unavailable" and is logged at DEBUG, so
users with a populated local configuration are never blocked by the
network. The whole fetch is bounded by a hard timeout; a timer emits one
slow-fetch warning if the fetch takes unusually long. The timer and the
fetch share a cancel event: once the fetch finishes or times out the
warning can no longer fire and a late fetch cannot write the cache.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..registry import versions
from ..registry.cache import DEFAULT_MAX_AGE, IndexCache
from ..registry.client import CatalogClient, CatalogError
from ..registry.index import Index, IndexLoadError, load_index

logger = logging.getLogger(__name__)

SLOW_FETCH_MESSAGE = "Fetching the catalog index is taking longer than usual..."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IndexLoader:
    """Fetches the catalog index once per session with graceful degradation."""

    def __init__(
        self,
        index_module: str,
        client_factory: Callable[[], CatalogClient],
        cache: Optional[IndexCache] = None,
        max_age: timedelta = DEFAULT_MAX_AGE,
        timeout: float = 30.0,
        slow_warning_after: float = 3.0,
        warn: Optional[Callable[[str], None]] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.index_module = index_module
        self.cache = cache
        self.max_age = max_age
        self.timeout = timeout
        self.slow_warning_after = slow_warning_after
        self._client_factory = client_factory
        self._warn = warn
        self._now = now

        self._done = False
        self._index: Optional[Index] = None
        self._client: Optional[CatalogClient] = None
        self._error: Optional[Exception] = None
        self.used_cache = False

    @property
    def fetched(self) -> bool:
        """True once ensure_index() has run."""
        return self._done

    @property
    def client(self) -> Optional[CatalogClient]:
        """Catalog client created during the fetch (None if never created)."""
        return self._client

    @property
    def error(self) -> Optional[Exception]:
        """Why the catalog is unavailable, if it is."""
        return self._error

    def get_client(self) -> CatalogClient:
        """Return the session's catalog client, creating it on first use."""
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def ensure_index(self) -> Optional[Index]:
        """Return the catalog index, or None if the catalog is unavailable."""
        if self._done:
            return self._index
        self._done = True

        cancel = threading.Event()
        timer: Optional[threading.Timer] = None
        if self._warn is not None and self.slow_warning_after > 0:
            timer = threading.Timer(self.slow_warning_after, self._warn_slow, args=(cancel,))
            timer.daemon = True
            timer.start()

        results: List[Index] = []
        errors: List[Exception] = []

        def run() -> None:
            try:
                results.append(self._fetch(cancel))
            except Exception as e:
                errors.append(e)

        # Daemon worker: a fetch stuck past the timeout must not hold the
        # interpreter open at exit.
        worker = threading.Thread(target=run, name="assetry-index", daemon=True)
        worker.start()
        worker.join(self.timeout)

        try:
            if worker.is_alive():
                raise CatalogError(f"index fetch timed out after {self.timeout:g}s")
            if errors:
                raise errors[0]
            self._index = results[0]
        except (CatalogError, IndexLoadError, OSError) as e:
            self._error = e
            logger.debug("Catalog unavailable: %s", e)
        finally:
            cancel.set()
            if timer is not None:
                timer.cancel()

        return self._index

    def _warn_slow(self, cancel: threading.Event) -> None:
        if not cancel.is_set() and self._warn is not None:
            self._warn(SLOW_FETCH_MESSAGE)

    def _fetch(self, cancel: threading.Event) -> Index:
        client = self.get_client()
        module = versions.module_of(self.index_module)

        record = self.cache.read() if self.cache is not None else None
        if record is not None and record.is_usable(self.index_module, self.max_age, self._now()):
            concrete = f"{module}@{record.version}"
            try:
                index = load_index(client.fetch(concrete).source_dir)
                self.used_cache = True
                logger.debug("Loaded index %s using cached version", concrete)
                return index
            except (CatalogError, IndexLoadError) as e:
                logger.debug("Cached index version %s failed, resolving latest: %s", concrete, e)
        elif record is not None:
            logger.debug("Index cache for %s not usable for %s", record.module, module)

        concrete = client.resolve_latest_version(self.index_module)
        index = load_index(client.fetch(concrete).source_dir)
        logger.debug("Loaded index %s", concrete)

        if self.cache is not None and not cancel.is_set():
            try:
                self.cache.record(self.index_module, versions.version_of(concrete), now=self._now())
            except OSError as e:
                logger.debug("Failed to write index cache %s: %s", self.cache.path, e)
        return index
