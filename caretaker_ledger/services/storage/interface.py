"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the remote store.
This allows us to:
1. Run without a backend (local cache only)
2. Use an in-memory backend for testing
3. Keep the cache/sync logic independent of the REST dialect

The remote store is a plain key-value table partitioned by family:
(family_id, key, value, updated_at). Values are JSON documents.
Every call names its family explicitly; there is no ambient family.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueBackendInterface(ABC):
    """
    Abstract interface for the remote key-value store.

    Implementations raise BackendError when the store cannot be reached
    or answers with an error. Callers decide whether to degrade.
    """

    @abstractmethod
    async def get(self, family_id: str, key: str) -> Optional[Any]:
        """
        Read one value.

        Returns:
            The decoded JSON value, or None if the key has no row
        """
        pass

    @abstractmethod
    async def set(self, family_id: str, key: str, value: Any) -> bool:
        """
        Write one value (update the row, insert it if none matched).

        Returns:
            True if the write was accepted
        """
        pass

    @abstractmethod
    async def remove(self, family_id: str, key: str) -> bool:
        """Delete one key. Returns True if the store accepted the delete."""
        pass

    @abstractmethod
    async def clear(self, family_id: str) -> bool:
        """Delete every key of a family."""
        pass

    @abstractmethod
    async def fetch_all(self, family_id: str) -> dict[str, Any]:
        """
        Read every key of a family.

        Returns:
            Mapping of key to decoded value
        """
        pass

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class BackendError(StorageError):
    """The remote store could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageUnavailableError(StorageError):
    """The local cache is disabled or cannot be written."""
    pass


class QuotaExceededError(StorageError):
    """The local cache has no room left for the value."""
    pass
