"""
Shared fixtures for Caretaker Ledger tests.

No network: the backend used by family storage tests is an in-memory
implementation of the key-value interface, with switches to make it
fail or answer slowly.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from caretaker_ledger.config import get_settings
from caretaker_ledger.models import FamilySession, UserRole
from caretaker_ledger.services.storage import (
    BackendError,
    FamilyStorage,
    LocalCache,
)
from caretaker_ledger.services.storage.interface import KeyValueBackendInterface


class InMemoryBackend(KeyValueBackendInterface):
    """Family key-value store kept in a dict, recording every call."""

    def __init__(self):
        self.rows: dict[tuple[str, str], Any] = {}
        self.calls: list[tuple[str, str, Optional[str]]] = []
        self.fail = False
        self.delay = 0.0

    async def _enter(self, op: str, family_id: str, key: Optional[str] = None) -> None:
        self.calls.append((op, family_id, key))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise BackendError(f"{op} failed", status_code=503)

    def seed(self, family_id: str, key: str, value: Any) -> None:
        self.rows[(family_id, key)] = value

    def calls_for(self, op: str) -> list[tuple[str, str, Optional[str]]]:
        return [c for c in self.calls if c[0] == op]

    async def get(self, family_id: str, key: str) -> Optional[Any]:
        await self._enter("get", family_id, key)
        return self.rows.get((family_id, key))

    async def set(self, family_id: str, key: str, value: Any) -> bool:
        await self._enter("set", family_id, key)
        self.rows[(family_id, key)] = value
        return True

    async def remove(self, family_id: str, key: str) -> bool:
        await self._enter("remove", family_id, key)
        self.rows.pop((family_id, key), None)
        return True

    async def clear(self, family_id: str) -> bool:
        await self._enter("clear", family_id)
        for row_key in [k for k in self.rows if k[0] == family_id]:
            del self.rows[row_key]
        return True

    async def fetch_all(self, family_id: str) -> dict[str, Any]:
        await self._enter("fetch_all", family_id)
        return {k: v for (f, k), v in self.rows.items() if f == family_id}


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Cheap bcrypt and no backend unless a test configures one."""
    monkeypatch.setenv("CARETAKER_AUTH_BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cache():
    return LocalCache()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def admin_session():
    return FamilySession(
        username="dana",
        family_id="family_1700000000000_abcdefghi",
        role=UserRole.ADMIN,
        timestamp=datetime.now(timezone.utc),
    )


@pytest.fixture
def caretaker_session(admin_session):
    return FamilySession(
        username="maria",
        family_id=admin_session.family_id,
        role=UserRole.CARETAKER,
        timestamp=datetime.now(timezone.utc),
    )


@pytest.fixture
def other_family_session():
    return FamilySession(
        username="yossi",
        family_id="family_1700000000001_zyxwvutsr",
        role=UserRole.ADMIN,
    )


@pytest.fixture
def storage(cache, admin_session):
    """Cache-only storage of the admin's family."""
    return FamilyStorage(cache, None, admin_session)


@pytest.fixture
def caretaker_storage(cache, caretaker_session):
    return FamilyStorage(cache, None, caretaker_session)


@pytest.fixture
def synced_storage(cache, backend, admin_session):
    """Admin storage mirrored to the in-memory backend."""
    return FamilyStorage(cache, backend, admin_session)
