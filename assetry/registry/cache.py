"""
cache.py - Persisted record of the last fetched index version.

The cache stores which index version was last resolved, for which index
module, and when, so later invocations can skip version resolution and
fetch that version directly. The index content itself is not cached here.

Cache file (YAML, under the user cache directory):

    index_module: github.com/acme/assets/index
    index_version: v0.3.1
    index_updated: '2025-06-01T10:15:00+00:00'

A record is usable only while it is younger than the freshness threshold
AND its module matches the currently configured index module. The file is
always replaced as a whole (tempfile + os.replace), so concurrent writers
can at worst cause a redundant fetch.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from . import versions

logger = logging.getLogger(__name__)

CACHE_FILE = "index-cache.yaml"

# Default staleness threshold for the index cache
DEFAULT_MAX_AGE = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IndexCacheRecord:
    """Cached index metadata.

    Attributes:
        version: Concrete index version that was last fetched (e.g. "v0.3.1").
        updated: When the version was resolved (timezone-aware).
        module: Index module identity, without version suffix.
    """

    version: str
    updated: datetime
    module: str

    def age(self, now: Optional[datetime] = None) -> timedelta:
        return (now or _utcnow()) - self.updated

    def is_fresh(self, max_age: timedelta, now: Optional[datetime] = None) -> bool:
        """True if the record was updated within *max_age*."""
        return self.age(now) < max_age

    def is_usable(
        self,
        configured_module: str,
        max_age: timedelta = DEFAULT_MAX_AGE,
        now: Optional[datetime] = None,
    ) -> bool:
        """True if the record is fresh and belongs to *configured_module*.

        *configured_module* may carry a version suffix; only the module
        identity is compared.
        """
        if not self.version or not versions.is_canonical(self.version):
            return False
        if self.module != versions.module_of(configured_module):
            return False
        return self.is_fresh(max_age, now)


def record_to_dict(record: IndexCacheRecord) -> Dict[str, Any]:
    return {
        "index_module": record.module,
        "index_version": record.version,
        "index_updated": record.updated.isoformat(),
    }


def record_from_dict(data: Dict[str, Any]) -> IndexCacheRecord:
    """Parse a cache record.

    Raises:
        ValueError: If a field is missing or the timestamp is malformed.
    """
    for key in ("index_module", "index_version", "index_updated"):
        if not isinstance(data.get(key), str):
            raise ValueError(f"cache record missing {key}")
    updated = datetime.fromisoformat(data["index_updated"])
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    return IndexCacheRecord(
        version=data["index_version"],
        updated=updated,
        module=data["index_module"],
    )


class IndexCache:
    """File-backed index cache, injected into the index loader."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def in_dir(cls, cache_dir: Path) -> "IndexCache":
        return cls(Path(cache_dir) / CACHE_FILE)

    def read(self) -> Optional[IndexCacheRecord]:
        """Read the cached record; None when absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict):
                raise ValueError("cache file is not a mapping")
            return record_from_dict(data)
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.debug("Ignoring unreadable index cache %s: %s", self.path, e)
            return None

    def write(self, record: IndexCacheRecord) -> None:
        """Replace the cache file with *record* atomically."""
        parent = self.path.parent
        parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=self.path.name + ".",
            dir=parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(record_to_dict(record), f, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def record(self, module_ref: str, version: str, now: Optional[datetime] = None) -> IndexCacheRecord:
        """Write a record for *version* of *module_ref* and return it."""
        record = IndexCacheRecord(
            version=version,
            updated=now or _utcnow(),
            module=versions.module_of(module_ref),
        )
        self.write(record)
        return record

    def status(self, max_age: timedelta = DEFAULT_MAX_AGE, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Summarize cache state for diagnostics ("missing", "fresh" or "stale")."""
        record = self.read()
        if record is None:
            return {"state": "missing", "path": str(self.path)}
        return {
            "state": "fresh" if record.is_fresh(max_age, now) else "stale",
            "path": str(self.path),
            "module": record.module,
            "version": record.version,
            "age": format_age(record.age(now)),
        }


def format_age(age: timedelta) -> str:
    """Human-readable age ("just now", "5 minutes", "2 days")."""
    seconds = int(age.total_seconds())
    if seconds < 1:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}" + ("" if count == 1 else "s")
    return "just now"
