"""
Family-Scoped Storage (cache first, backend mirrored)

DESIGN DECISION: Reads and writes hit the local cache synchronously and
mirror to the remote store in the background. The screens need an
immediate answer; the backend is the source of truth across devices.

Consequences every caller must live with:
- get() returns what the cache holds now. A background refresh may
  replace it later; subscribe() or get_from_backend() to see that value.
- set() never reports backend failures. set_to_backend() does.
- The last writer wins. There are no versions or merges.

Background work needs a running event loop. Without one (plain scripts,
synchronous tests) the storage behaves as a pure cache.
"""

import asyncio
import json
from collections import defaultdict
from typing import Any, Callable, Optional

import structlog

from caretaker_ledger.models.family import FamilySession, StorageTestResult
from caretaker_ledger.services.storage.interface import (
    BackendError,
    KeyValueBackendInterface,
    QuotaExceededError,
    StorageError,
    StorageUnavailableError,
)
from caretaker_ledger.services.storage.local_cache import (
    LocalCache,
    family_prefix,
    scoped_key,
)

logger = structlog.get_logger(__name__)

SELF_TEST_KEY = "__storage_test__"

Subscriber = Callable[[str, Any], None]

_MISSING = object()
_STALE = object()


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class FamilyStorage:
    """
    Key-value storage bound to one family session.

    Example:
        storage = FamilyStorage(cache, backend, session)
        storage.set("worklog", {"2024-01": []})
        storage.get("worklog")            # immediate, from the cache
        await storage.get_from_backend("worklog")   # authoritative
    """

    def __init__(
        self,
        cache: LocalCache,
        backend: Optional[KeyValueBackendInterface],
        session: FamilySession,
        namespace: str = "caretaker",
        on_quota_exceeded: Optional[Callable[[str], None]] = None,
    ):
        self._cache = cache
        self._backend = backend
        self._session = session
        self._namespace = namespace
        self._on_quota_exceeded = on_quota_exceeded

        self._refreshes: dict[str, asyncio.Task] = {}
        self._writes: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        # bumped on every local mutation so a stale refresh cannot undo it
        self._versions: dict[str, int] = defaultdict(int)
        self._clear_epoch = 0

    @property
    def session(self) -> FamilySession:
        return self._session

    @property
    def family_id(self) -> str:
        return self._session.family_id

    @property
    def has_backend(self) -> bool:
        return self._backend is not None

    def _key(self, key: str) -> str:
        return scoped_key(self._namespace, self.family_id, key)

    # -------------------------------------------------------------------------
    # Cache access
    # -------------------------------------------------------------------------

    def _read_cache(self, key: str, default: Any = None) -> Any:
        try:
            raw = self._cache.get_item(self._key(key))
        except StorageUnavailableError:
            return default
        if raw is None:
            logger.debug("cache_miss", key=key, family_id=self.family_id)
            return default
        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.error("cache_value_corrupt", key=key, error=str(e))
            return default
        logger.debug("cache_hit", key=key, family_id=self.family_id)
        return value

    def _write_cache(self, key: str, value: Any) -> None:
        self._cache.set_item(self._key(key), json.dumps(value))

    def _mutated(self, key: str) -> None:
        self._versions[key] += 1

    # -------------------------------------------------------------------------
    # Background task bookkeeping
    # -------------------------------------------------------------------------

    def _spawn(self, coro, registry: Optional[dict] = None, key: Optional[str] = None):
        loop = _running_loop()
        if loop is None:
            coro.close()
            logger.debug("backend_sync_skipped", key=key, reason="no running event loop")
            return None

        task = loop.create_task(coro)
        self._tasks.add(task)

        def forget(done: asyncio.Task) -> None:
            self._tasks.discard(done)
            if registry is not None and registry.get(key) is done:
                del registry[key]

        task.add_done_callback(forget)
        if registry is not None:
            registry[key] = task
        return task

    async def drain(self) -> None:
        """Wait until every background backend call has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """
        Be told when a backend refresh changes the cached value of key.

        Returns:
            A function that removes the subscription
        """
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers.get(key, []):
                self._subscribers[key].remove(callback)

        return unsubscribe

    def _notify(self, key: str, value: Any) -> None:
        for callback in list(self._subscribers.get(key, [])):
            try:
                callback(key, value)
            except Exception:
                logger.exception("subscriber_failed", key=key)

    def _apply_remote(self, key: str, value: Any) -> None:
        """Store a backend value in the cache, telling subscribers if it changed."""
        previous = self._read_cache(key, _MISSING)
        try:
            self._write_cache(key, value)
        except StorageError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
        if previous is _MISSING or previous != value:
            self._notify(key, value)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value from the cache.

        Also starts a background refresh from the backend. Concurrent
        callers share the refresh already in flight for the same key.
        """
        value = self._read_cache(key, default)
        if self._backend is not None and key not in self._refreshes:
            self._start_refresh(key)
        return value

    async def get_from_backend(self, key: str, default: Any = None) -> Any:
        """
        Read the authoritative value of key.

        Falls back to the cached value when no backend is configured,
        the backend has no row, or the backend call fails.
        """
        if self._backend is None:
            return self._read_cache(key, default)

        task = self._refreshes.get(key)
        if task is None:
            task = self._start_refresh(key)
        value = await task
        if value is _STALE:
            # The joined refresh predates a local write; read again after it
            value = await self._refresh(
                key, self._versions[key], self._clear_epoch, self._writes.get(key)
            )
        if value is _MISSING or value is _STALE:
            return self._read_cache(key, default)
        return value

    def _start_refresh(self, key: str) -> Optional[asyncio.Task]:
        return self._spawn(
            self._refresh(key, self._versions[key], self._clear_epoch, self._writes.get(key)),
            self._refreshes,
            key,
        )

    async def _refresh(
        self,
        key: str,
        version: int,
        epoch: int,
        pending_write: Optional[asyncio.Task] = None,
    ) -> Any:
        """Fetch key and cache it unless it changed locally since version and epoch."""
        if pending_write is not None:
            await asyncio.gather(pending_write, return_exceptions=True)
        try:
            remote = await self._backend.get(self.family_id, key)
        except BackendError as e:
            logger.error("backend_sync_failed", op="get", key=key, error=str(e))
            return _MISSING

        if remote is None:
            return _MISSING
        if version != self._versions[key] or epoch != self._clear_epoch:
            logger.debug("stale_refresh_dropped", key=key)
            return _STALE
        self._apply_remote(key, remote)
        return remote

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set(self, key: str, value: Any) -> bool:
        """
        Write value to the cache and mirror it to the backend.

        Returns:
            True if the cache accepted the value. Backend failures are
            only logged.
        """
        self._mutated(key)
        try:
            self._write_cache(key, value)
        except QuotaExceededError as e:
            logger.error("cache_quota_exceeded", key=key, error=str(e))
            if self._on_quota_exceeded:
                self._on_quota_exceeded(
                    "Storage quota exceeded. Please clear some data."
                )
            return False
        except StorageUnavailableError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            self._schedule_write(key, value)
            return False
        except StorageError as e:
            logger.error("cache_write_failed", key=key, error=str(e))
            return False

        self._schedule_write(key, value)
        return True

    async def set_to_backend(self, key: str, value: Any) -> bool:
        """
        Write value to the cache and wait for the backend write.

        Returns:
            True once the backend confirmed the write (or when there is
            no backend), False if the backend write failed.
        """
        self._mutated(key)
        try:
            self._write_cache(key, value)
        except StorageError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

        if self._backend is None:
            return True
        task = self._spawn(
            self._write_after(self._writes.get(key), key, value),
            self._writes,
            key,
        )
        return await task

    def _schedule_write(self, key: str, value: Any) -> None:
        if self._backend is None:
            return
        self._spawn(
            self._write_after(self._writes.get(key), key, value),
            self._writes,
            key,
        )

    async def _write_after(
        self,
        previous: Optional[asyncio.Task],
        key: str,
        value: Any,
    ) -> bool:
        # A write in flight for the same key finishes before ours starts
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        try:
            await self._backend.set(self.family_id, key, value)
        except BackendError as e:
            logger.error("backend_sync_failed", op="set", key=key, error=str(e))
            return False
        logger.debug("backend_synced", op="set", key=key)
        return True

    def remove(self, key: str) -> bool:
        """Remove key from the cache and from the backend."""
        self._mutated(key)
        try:
            self._cache.remove_item(self._key(key))
        except StorageError as e:
            logger.warning("cache_remove_failed", key=key, error=str(e))
            return False

        if self._backend is not None:
            self._spawn(
                self._remove_after(self._writes.get(key), key),
                self._writes,
                key,
            )
        return True

    async def _remove_after(self, previous: Optional[asyncio.Task], key: str) -> bool:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        try:
            removed = await self._backend.remove(self.family_id, key)
        except BackendError as e:
            logger.error("backend_sync_failed", op="remove", key=key, error=str(e))
            return False
        if not removed:
            logger.error("backend_sync_failed", op="remove", key=key)
        return removed

    def clear(self) -> bool:
        """Remove every key of this family from the cache and the backend."""
        self._clear_epoch += 1
        try:
            removed = self._cache.remove_prefix(family_prefix(self._namespace, self.family_id))
        except StorageError as e:
            logger.warning("cache_clear_failed", family_id=self.family_id, error=str(e))
            return False
        logger.info("cache_cleared", family_id=self.family_id, removed=removed)

        if self._backend is not None:
            self._spawn(self._clear_after(list(self._writes.values())))
        return True

    async def _clear_after(self, pending: list[asyncio.Task]) -> bool:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        try:
            cleared = await self._backend.clear(self.family_id)
        except BackendError as e:
            logger.error("backend_sync_failed", op="clear", error=str(e))
            return False
        return cleared

    # -------------------------------------------------------------------------
    # Whole-family operations
    # -------------------------------------------------------------------------

    async def sync_all_from_backend(self) -> dict[str, Any]:
        """
        Pull every key of the family into the cache.

        Run at session start so the backend is authoritative from then on.
        Returns the fetched mapping (empty without a backend or on failure).
        """
        if self._backend is None:
            logger.info("backend_sync_skipped", reason="backend not configured")
            return {}

        try:
            data = await self._backend.fetch_all(self.family_id)
        except BackendError as e:
            logger.error("backend_sync_failed", op="fetch_all", error=str(e))
            return {}

        for key, value in data.items():
            self._apply_remote(key, value)
        logger.info("backend_synced_all", family_id=self.family_id, items=len(data))
        return data

    def view_all(self) -> dict[str, Any]:
        """Everything cached for this family, keyed by the short key."""
        if not self._cache.available:
            return {"error": "Local cache is not available"}

        prefix = family_prefix(self._namespace, self.family_id)
        keys = [k for k in self._cache.keys() if k.startswith(prefix)]
        data = {}
        for full_key in keys:
            raw = self._cache.get_item(full_key)
            try:
                data[full_key[len(prefix):]] = json.loads(raw)
            except ValueError:
                data[full_key[len(prefix):]] = raw
        return {"family_id": self.family_id, "data": data, "keys": keys}

    def self_test(self) -> StorageTestResult:
        """Write, read back and remove a sentinel, unscoped and family-scoped."""
        if not self._cache.available:
            return StorageTestResult(available=False, error="Local cache is not available")

        sentinel = json.dumps({"test": True})
        for test_key in (SELF_TEST_KEY, self._key(SELF_TEST_KEY)):
            try:
                self._cache.set_item(test_key, sentinel)
                read_back = self._cache.get_item(test_key)
                self._cache.remove_item(test_key)
            except StorageError as e:
                return StorageTestResult(available=False, error=str(e))
            if read_back != sentinel:
                return StorageTestResult(
                    available=False,
                    error="Failed to read back written data",
                )

        return StorageTestResult(available=True, family_id=self.family_id)
