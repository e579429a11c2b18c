"""
Tests for the persisted index cache record.
"""

from datetime import datetime, timedelta, timezone

from assetry.registry.cache import (
    IndexCache,
    IndexCacheRecord,
    format_age,
)

from conftest import INDEX_MODULE

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestIndexCacheRecord:
    """Tests for record usability."""

    def test_fresh_matching_record_is_usable(self):
        """Fresh records for the configured module are usable."""
        record = IndexCacheRecord("v0.3.1", NOW - timedelta(hours=1), "github.com/acme/assets/index")
        assert record.is_usable(INDEX_MODULE, now=NOW)

    def test_stale_record_not_usable(self):
        """Records older than the threshold are not usable."""
        record = IndexCacheRecord("v0.3.1", NOW - timedelta(hours=25), "github.com/acme/assets/index")
        assert not record.is_usable(INDEX_MODULE, now=NOW)
        assert record.is_usable(INDEX_MODULE, max_age=timedelta(hours=48), now=NOW)

    def test_module_mismatch_not_usable(self):
        """A record written for another index module is ignored."""
        record = IndexCacheRecord("v0.3.1", NOW, "github.com/other/assets/index")
        assert not record.is_usable(INDEX_MODULE, now=NOW)

    def test_non_canonical_version_not_usable(self):
        """Only concrete versions can be fetched directly."""
        record = IndexCacheRecord("v0", NOW, "github.com/acme/assets/index")
        assert not record.is_usable(INDEX_MODULE, now=NOW)


class TestIndexCache:
    """Tests for the file-backed cache."""

    def test_record_then_read(self, tmp_path):
        """A written record reads back with the module identity only."""
        cache = IndexCache.in_dir(tmp_path / "cache")
        cache.record(INDEX_MODULE, "v0.3.1", now=NOW)

        record = cache.read()
        assert record == IndexCacheRecord("v0.3.1", NOW, "github.com/acme/assets/index")

    def test_write_leaves_no_temp_files(self, tmp_path):
        """Atomic replace leaves only the cache file behind."""
        cache = IndexCache.in_dir(tmp_path)
        cache.record(INDEX_MODULE, "v0.1.0", now=NOW)
        cache.record(INDEX_MODULE, "v0.2.0", now=NOW)

        assert [p.name for p in tmp_path.iterdir()] == ["index-cache.yaml"]
        assert cache.read().version == "v0.2.0"

    def test_missing_file(self, tmp_path):
        """No file, no record."""
        assert IndexCache.in_dir(tmp_path).read() is None

    def test_malformed_file_ignored(self, tmp_path):
        """Unreadable content reads as no record."""
        cache = IndexCache.in_dir(tmp_path)
        cache.path.write_text("index_version: [oops\n")
        assert cache.read() is None

        cache.path.write_text("index_version: v0.1.0\n")
        assert cache.read() is None

        cache.path.write_text(
            "index_module: m\nindex_version: v0.1.0\nindex_updated: yesterday\n"
        )
        assert cache.read() is None

    def test_naive_timestamp_treated_as_utc(self, tmp_path):
        """Timestamps without an offset are read as UTC."""
        cache = IndexCache.in_dir(tmp_path)
        cache.path.write_text(
            "index_module: m\nindex_version: v0.1.0\nindex_updated: '2025-06-01T12:00:00'\n"
        )
        assert cache.read().updated == NOW

    def test_status(self, tmp_path):
        """status reports missing, fresh and stale states."""
        cache = IndexCache.in_dir(tmp_path)
        assert cache.status(now=NOW)["state"] == "missing"

        cache.record(INDEX_MODULE, "v0.3.1", now=NOW - timedelta(minutes=5))
        status = cache.status(now=NOW)
        assert status["state"] == "fresh"
        assert status["version"] == "v0.3.1"
        assert status["age"] == "5 minutes"

        assert cache.status(max_age=timedelta(minutes=1), now=NOW)["state"] == "stale"


class TestFormatAge:
    """Tests for format_age."""

    def test_units(self):
        assert format_age(timedelta(0)) == "just now"
        assert format_age(timedelta(seconds=1)) == "1 second"
        assert format_age(timedelta(hours=2, minutes=3)) == "2 hours"
        assert format_age(timedelta(days=1)) == "1 day"
