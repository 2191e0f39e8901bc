"""
User Directory

DESIGN DECISION: Users live in the backend users table when a backend is
configured, and in a single local cache key otherwise. Both sit behind
one interface so the auth service does not care which is in use.

Lookups are by username equality. Usernames are unique across all
families.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import ValidationError

from caretaker_ledger.config import get_settings
from caretaker_ledger.models import RecordId, User
from caretaker_ledger.services.storage import (
    LocalCache,
    PostgrestClient,
    StorageError,
)
from caretaker_ledger.services.storage.rest_backend import eq

logger = structlog.get_logger(__name__)

LOCAL_USERS_KEY = "caretaker_users"


class UserDirectoryInterface(ABC):
    """
    Abstract interface for user account storage.

    Implementations raise StorageError subclasses when the store fails.
    """

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def list_family(self, family_id: str) -> list[User]:
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Store a new user. Returns the stored user (ids may be reassigned)."""
        pass

    @abstractmethod
    async def delete(self, user_id: RecordId, family_id: str) -> bool:
        """Delete a user of the given family. Returns True if one was deleted."""
        pass

    @abstractmethod
    async def update_password(self, user_id: RecordId, password_hash: str) -> bool:
        pass

    async def close(self) -> None:
        return None


def _parse_users(rows: list[dict]) -> list[User]:
    users = []
    for row in rows:
        if "familyId" in row and "family_id" not in row:
            row = {**row, "family_id": row["familyId"]}
        try:
            users.append(User.model_validate(row))
        except ValidationError as e:
            logger.warning("user_row_invalid", username=row.get("username"), error=str(e))
    return users


class RestUserDirectory(UserDirectoryInterface):
    """Users table behind the PostgREST endpoint."""

    def __init__(
        self,
        client: Optional[PostgrestClient] = None,
        table: Optional[str] = None,
    ):
        self._client = client or PostgrestClient.from_settings()
        self._table = table or get_settings().backend.users_table

    async def close(self) -> None:
        await self._client.close()

    async def find_by_username(self, username: str) -> Optional[User]:
        response = await self._client.request(
            "GET",
            self._table,
            params={"username": eq(username), "select": "*"},
        )
        users = _parse_users(self._client.rows(response))
        return users[0] if users else None

    async def list_family(self, family_id: str) -> list[User]:
        response = await self._client.request(
            "GET",
            self._table,
            params={"family_id": eq(family_id), "select": "*"},
        )
        return _parse_users(self._client.rows(response))

    async def create(self, user: User) -> User:
        row = user.to_row()
        # ids are assigned by the table
        row.pop("id", None)
        response = await self._client.request(
            "POST",
            self._table,
            payload=row,
            return_representation=True,
        )
        created = _parse_users(self._client.rows(response))
        return created[0] if created else user

    async def delete(self, user_id: RecordId, family_id: str) -> bool:
        response = await self._client.request(
            "DELETE",
            self._table,
            params={"id": eq(user_id), "family_id": eq(family_id)},
        )
        return response.is_success

    async def update_password(self, user_id: RecordId, password_hash: str) -> bool:
        response = await self._client.request(
            "PATCH",
            self._table,
            params={"id": eq(user_id)},
            payload={"password": password_hash},
        )
        return response.is_success


class LocalUserDirectory(UserDirectoryInterface):
    """
    Users list kept in the local cache under caretaker_users.

    Used when no backend is configured. No default users are seeded:
    the first account of a family comes from registration.
    """

    def __init__(self, cache: LocalCache, key: str = LOCAL_USERS_KEY):
        self._cache = cache
        self._key = key

    def _load(self) -> list[User]:
        raw = self._cache.get_item(self._key)
        if not raw:
            return []
        try:
            rows = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Users list is corrupt: {e}")
        return _parse_users(rows if isinstance(rows, list) else [])

    def _save(self, users: list[User]) -> None:
        self._cache.set_item(self._key, json.dumps([u.to_row() for u in users]))

    async def find_by_username(self, username: str) -> Optional[User]:
        for user in self._load():
            if user.username == username:
                return user
        return None

    async def list_family(self, family_id: str) -> list[User]:
        return [u for u in self._load() if u.family_id == family_id]

    async def create(self, user: User) -> User:
        users = self._load()
        users.append(user)
        self._save(users)
        return user

    async def delete(self, user_id: RecordId, family_id: str) -> bool:
        users = self._load()
        remaining = [
            u for u in users
            if not (str(u.id) == str(user_id) and u.family_id == family_id)
        ]
        if len(remaining) == len(users):
            return False
        self._save(remaining)
        return True

    async def update_password(self, user_id: RecordId, password_hash: str) -> bool:
        users = self._load()
        for user in users:
            if str(user.id) == str(user_id):
                user.password_hash = password_hash
                self._save(users)
                return True
        return False

