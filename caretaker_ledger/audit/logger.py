"""
Action Logger

DESIGN DECISION: Every worklog change a family member makes is logged.
This provides:
1. Admins can review what caretakers recorded
2. Debugging capability
3. A trail that survives across devices (stored with the family data)

The action logger:
- Requires a session; without one logging is a no-op
- Keeps only the most recent entries (newest first)
- Also emits each entry to the structured local log
"""

import logging
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from caretaker_ledger.config import get_settings
from caretaker_ledger.models import (
    ActionLogEntry,
    ActionLogEntryBuilder,
    ActionType,
    FamilySession,
    UserRole,
)
from caretaker_ledger.services.storage import FamilyStorage, keys


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_log_level(debug: bool) -> None:
    """Set the package log level; DEBUG when debug mode is on."""
    logging.getLogger("caretaker_ledger").setLevel(logging.DEBUG if debug else logging.INFO)

SORT_FIELDS = ("timestamp", "username", "role", "action")


class ActionLogger:
    """
    Per-family action log.

    Stored under the actionLog key as a list, newest entry first.
    """

    def __init__(
        self,
        storage: FamilyStorage,
        session: Optional[FamilySession] = None,
        limit: Optional[int] = None,
    ):
        """
        Initialize action logger.

        Args:
            storage: Family-bound storage the log lives in
            session: Acting session. Defaults to the storage's session.
            limit: Number of entries kept. Defaults to the configured limit.
        """
        self._storage = storage
        self._session = session if session is not None else storage.session
        self._limit = limit or get_settings().app.action_log_limit
        self._logger = structlog.get_logger(__name__)

    def _load(self) -> list[ActionLogEntry]:
        stored = self._storage.get(keys.ACTION_LOG, []) or []
        if not isinstance(stored, list):
            return []
        entries = []
        for raw in stored:
            try:
                entries.append(ActionLogEntry.model_validate(raw))
            except ValidationError as e:
                self._logger.warning("action_log_entry_invalid", error=str(e))
        return entries

    def log_action(
        self,
        action: Union[str, ActionType],
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[ActionLogEntry]:
        """
        Prepend an entry for the current session.

        Returns the entry, or None when there is no session.
        """
        if self._session is None or not self._session.logged_in:
            return None

        action_name = action.value if isinstance(action, ActionType) else action
        entry = ActionLogEntryBuilder.for_session(self._session, action_name, details or {})
        return self.log(entry)

    def log(self, entry: ActionLogEntry) -> ActionLogEntry:
        """Store a prepared entry."""
        self._logger.info("action_logged", **entry.to_log_dict())

        raw_entries = self._storage.get(keys.ACTION_LOG, []) or []
        if not isinstance(raw_entries, list):
            self._logger.warning("action_log_corrupt", stored_type=type(raw_entries).__name__)
            raw_entries = []
        raw_entries.insert(0, entry.to_storage())
        del raw_entries[self._limit:]
        self._storage.set(keys.ACTION_LOG, raw_entries)
        return entry

    def get_action_log(
        self,
        filter_by_role: Union[str, UserRole, None] = None,
        sort_field: str = "timestamp",
        descending: bool = True,
    ) -> list[ActionLogEntry]:
        """
        Entries of the caller's family, optionally of one role only.

        Never returns entries of another family and never more than
        the configured limit.
        """
        if self._session is None:
            return []

        entries = [
            e for e in self._load()
            if e.family_id == self._session.family_id
        ]
        if filter_by_role:
            role = UserRole(filter_by_role)
            entries = [e for e in entries if e.role == role]

        if sort_field not in SORT_FIELDS:
            raise ValueError(f"Cannot sort action log by '{sort_field}'")

        def sort_key(entry: ActionLogEntry):
            value = getattr(entry, sort_field)
            if sort_field == "timestamp":
                return value
            if isinstance(value, UserRole):
                return value.value
            return (value or "").lower()

        entries.sort(key=sort_key, reverse=descending)
        return entries[:self._limit]

    def clear_action_log(self) -> bool:
        """Drop every entry. There is no single-entry delete."""
        self._logger.info(
            "action_log_cleared",
            family_id=self._session.family_id if self._session else None,
        )
        return self._storage.set(keys.ACTION_LOG, [])
