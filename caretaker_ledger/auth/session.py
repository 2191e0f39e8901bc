"""Session persistence under the well-known caretaker_auth cache key."""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from caretaker_ledger.models import FamilySession
from caretaker_ledger.services.storage import LocalCache, StorageError

logger = structlog.get_logger(__name__)

SESSION_KEY = "caretaker_auth"


class SessionStore:
    def __init__(self, cache: LocalCache, key: str = SESSION_KEY):
        self._cache = cache
        self._key = key

    def load(self) -> Optional[FamilySession]:
        """The stored session, or None if absent, unreadable or unavailable."""
        try:
            raw = self._cache.get_item(self._key)
        except StorageError:
            return None
        if not raw:
            return None
        try:
            return FamilySession.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning("session_unreadable", error=str(e))
            return None

    def save(self, session: FamilySession) -> None:
        self._cache.set_item(self._key, json.dumps(session.to_storage()))

    def clear(self) -> None:
        try:
            self._cache.remove_item(self._key)
        except StorageError as e:
            logger.warning("session_clear_failed", error=str(e))
