"""
REST Backend Storage Implementation

DESIGN DECISION: The remote store is a PostgREST endpoint (as exposed by
Supabase) because:
1. A family's data is a handful of JSON documents, one row per key
2. Row filters (family_id=eq.X&key=eq.Y) give us tenancy for free
3. The same client serves the users table for authentication

TRADEOFFS:
- No upsert: writes PATCH first and POST when no row matched
- No versions or ETags: the last writer wins
- No retries: a failed call is reported once and the caller degrades

The implementation follows the abstract interface, so the cache/sync
layer never sees HTTP.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog

from caretaker_ledger.config import BackendSettings, get_settings
from caretaker_ledger.services.storage.interface import (
    BackendError,
    KeyValueBackendInterface,
)

logger = structlog.get_logger(__name__)


def eq(value: Any) -> str:
    """PostgREST equality filter."""
    return f"eq.{value}"


class PostgrestClient:
    """
    Low-level REST client wrapper.

    Handles authentication headers and turns transport failures into
    BackendError. HTTP status handling is left to the caller.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[BackendSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PostgrestClient":
        settings = settings or get_settings().backend
        return cls(
            base_url=settings.url,
            api_key=settings.anon_key,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/rest/v1",
                headers={
                    "apikey": self._api_key,
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        payload: Optional[dict] = None,
        return_representation: bool = False,
    ) -> httpx.Response:
        headers = {"Prefer": "return=representation"} if return_representation else None
        try:
            return await self.client.request(
                method,
                f"/{table}",
                params=params,
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise BackendError(f"{method} /{table} failed: {e}")

    @staticmethod
    def rows(response: httpx.Response) -> list[dict]:
        """Decode a row list, raising BackendError on an error status."""
        if not response.is_success:
            raise BackendError(
                f"Backend answered {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Backend returned invalid JSON: {e}")
        if isinstance(data, dict):
            return [data]
        return data or []


def decode_value(raw: Any) -> Any:
    """Values are stored as JSON text; tolerate json/jsonb columns too."""
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


class RestKeyValueBackend(KeyValueBackendInterface):
    """
    PostgREST implementation of the family key-value store.

    Rows: (family_id, key, value, updated_at), value holding JSON text.
    """

    def __init__(
        self,
        client: Optional[PostgrestClient] = None,
        table: Optional[str] = None,
    ):
        self._client = client or PostgrestClient.from_settings()
        self._table = table or get_settings().backend.family_data_table

    async def __aenter__(self) -> "RestKeyValueBackend":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.close()

    async def get(self, family_id: str, key: str) -> Optional[Any]:
        response = await self._client.request(
            "GET",
            self._table,
            params={"family_id": eq(family_id), "key": eq(key)},
        )
        rows = self._client.rows(response)
        if not rows:
            return None
        return decode_value(rows[0].get("value"))

    async def set(self, family_id: str, key: str, value: Any) -> bool:
        payload = {
            "family_id": family_id,
            "key": key,
            "value": json.dumps(value),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        # Try to update first
        update = await self._client.request(
            "PATCH",
            self._table,
            params={"family_id": eq(family_id), "key": eq(key)},
            payload=payload,
            return_representation=True,
        )
        if update.is_success and self._matched_rows(update):
            return True

        # No row matched (or the update failed): insert
        insert = await self._client.request(
            "POST",
            self._table,
            payload=payload,
            return_representation=True,
        )
        if not insert.is_success:
            raise BackendError(
                f"Insert of '{key}' failed with {insert.status_code}",
                status_code=insert.status_code,
            )
        return True

    @staticmethod
    def _matched_rows(response: httpx.Response) -> bool:
        try:
            data = response.json()
        except ValueError:
            return False
        return bool(data)

    async def remove(self, family_id: str, key: str) -> bool:
        response = await self._client.request(
            "DELETE",
            self._table,
            params={"family_id": eq(family_id), "key": eq(key)},
        )
        return response.is_success

    async def clear(self, family_id: str) -> bool:
        response = await self._client.request(
            "DELETE",
            self._table,
            params={"family_id": eq(family_id)},
        )
        return response.is_success

    async def fetch_all(self, family_id: str) -> dict[str, Any]:
        response = await self._client.request(
            "GET",
            self._table,
            params={"family_id": eq(family_id)},
        )
        rows = self._client.rows(response)
        return {
            row["key"]: decode_value(row.get("value"))
            for row in rows
            if row.get("key")
        }
