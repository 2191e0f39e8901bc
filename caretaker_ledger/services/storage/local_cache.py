"""
Local Key-Value Cache

A synchronous string store with the semantics of browser localStorage:
string keys, string values, a byte quota, and the possibility of being
unavailable altogether. Optionally persisted to a JSON file so a cache
survives restarts.

Keys of family data follow "<namespace>_<familyId>_<key>".
"""

import json
from pathlib import Path
from typing import Iterator, Optional

import structlog

from caretaker_ledger.services.storage.interface import (
    QuotaExceededError,
    StorageError,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)


def scoped_key(namespace: str, family_id: str, key: str) -> str:
    """Cache key of a family-scoped value."""
    return f"{namespace}_{family_id}_{key}"


def family_prefix(namespace: str, family_id: str) -> str:
    return f"{namespace}_{family_id}_"


class LocalCache:
    """
    In-process string store with an optional JSON file behind it.

    All methods raise StorageUnavailableError when the cache is disabled.
    set_item raises QuotaExceededError when the write would push the
    total size past quota_bytes.
    """

    def __init__(
        self,
        quota_bytes: int = 5 * 1024 * 1024,
        file_path: Optional[str] = None,
        enabled: bool = True,
    ):
        self._quota_bytes = quota_bytes
        self._file_path = Path(file_path) if file_path else None
        self._enabled = enabled
        self._items: dict[str, str] = {}

        if self._enabled and self._file_path and self._file_path.exists():
            self._load()

    @property
    def available(self) -> bool:
        return self._enabled

    @property
    def size_bytes(self) -> int:
        return sum(self._entry_size(k, v) for k, v in self._items.items())

    @staticmethod
    def _entry_size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def _require_available(self) -> None:
        if not self._enabled:
            raise StorageUnavailableError("Local cache is not available")

    def _load(self) -> None:
        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("cache_file_unreadable", path=str(self._file_path), error=str(e))
            return
        if isinstance(data, dict):
            self._items = {str(k): str(v) for k, v in data.items()}

    def _persist(self) -> None:
        if not self._file_path:
            return
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(self._items), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to persist cache file: {e}")

    def get_item(self, key: str) -> Optional[str]:
        self._require_available()
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._require_available()
        current = self._items.get(key)
        current_size = self._entry_size(key, current) if current is not None else 0
        new_size = self.size_bytes - current_size + self._entry_size(key, value)
        if new_size > self._quota_bytes:
            raise QuotaExceededError(
                f"Cache quota of {self._quota_bytes} bytes exceeded writing '{key}'"
            )
        self._items[key] = value
        self._persist()

    def remove_item(self, key: str) -> None:
        self._require_available()
        if self._items.pop(key, None) is not None:
            self._persist()

    def keys(self) -> Iterator[str]:
        self._require_available()
        return iter(list(self._items))

    def remove_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the number removed."""
        self._require_available()
        doomed = [k for k in self._items if k.startswith(prefix)]
        for k in doomed:
            del self._items[k]
        if doomed:
            self._persist()
        return len(doomed)
