"""Tests for the local string cache."""

import json

import pytest

from caretaker_ledger.services.storage import (
    LocalCache,
    QuotaExceededError,
    StorageUnavailableError,
)


class TestLocalCache:
    """Tests for the localStorage-like cache."""

    def test_set_get_remove(self):
        """Test the basic string operations."""
        cache = LocalCache()
        cache.set_item("a", "1")
        assert cache.get_item("a") == "1"
        cache.remove_item("a")
        assert cache.get_item("a") is None

    def test_quota(self):
        """Test that a write past the quota is refused and nothing changes."""
        cache = LocalCache(quota_bytes=10)
        cache.set_item("k", "12345")
        with pytest.raises(QuotaExceededError):
            cache.set_item("k2", "123456")
        assert cache.get_item("k2") is None

    def test_overwrite_counts_new_size_only(self):
        """Test that replacing a value does not count the old one."""
        cache = LocalCache(quota_bytes=10)
        cache.set_item("k", "12345678")
        cache.set_item("k", "87654321")
        assert cache.size_bytes == 9

    def test_unavailable(self):
        """Test that every call fails on a disabled cache."""
        cache = LocalCache(enabled=False)
        assert not cache.available
        with pytest.raises(StorageUnavailableError):
            cache.get_item("a")
        with pytest.raises(StorageUnavailableError):
            cache.set_item("a", "1")

    def test_remove_prefix(self):
        """Test removing one family's keys."""
        cache = LocalCache()
        cache.set_item("caretaker_f1_worklog", "{}")
        cache.set_item("caretaker_f1_payslips", "{}")
        cache.set_item("caretaker_f2_worklog", "{}")
        assert cache.remove_prefix("caretaker_f1_") == 2
        assert list(cache.keys()) == ["caretaker_f2_worklog"]

    def test_file_persistence(self, tmp_path):
        """Test that a file-backed cache survives a restart."""
        path = tmp_path / "cache" / "store.json"
        LocalCache(file_path=str(path)).set_item("a", "1")
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}
        assert LocalCache(file_path=str(path)).get_item("a") == "1"

    def test_corrupt_file_starts_empty(self, tmp_path):
        """Test that an unreadable file is ignored."""
        path = tmp_path / "store.json"
        path.write_text("not json", encoding="utf-8")
        assert LocalCache(file_path=str(path)).get_item("a") is None
