"""
Action Log Models

Admins review what caretakers changed in the worklog. Every add/delete
of an activity produces one ActionLogEntry.

DESIGN DECISION: The action log is append-only. Entries are never edited
or deleted one by one; the whole log can only be cleared.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import Field

from caretaker_ledger.models.family import (
    Activity,
    CamelModel,
    FamilySession,
    RecordId,
    UserRole,
)


class ActionType(str, Enum):
    """Actions recorded in the action log."""
    ADD_ACTIVITY = "add_activity"
    DELETE_ACTIVITY = "delete_activity"


class ActionLogEntry(CamelModel):
    """A single action log entry."""

    id: RecordId = Field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the action happened (UTC)"
    )
    username: str
    role: UserRole = UserRole.ADMIN
    family_id: str
    action: str = Field(..., min_length=1)
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "entry_id": str(self.id),
            "timestamp": self.timestamp.isoformat(),
            "username": self.username,
            "role": self.role.value,
            "family_id": self.family_id,
            "action": self.action,
            "details": self.details,
        }


class ActionLogEntryBuilder:
    """
    Helper class to build action log entries with common patterns.

    Usage:
        entry = ActionLogEntryBuilder.activity_added(session, activity)
    """

    @staticmethod
    def for_session(
        session: FamilySession,
        action: str,
        details: dict[str, Any],
    ) -> ActionLogEntry:
        return ActionLogEntry(
            username=session.username,
            role=session.role,
            family_id=session.family_id,
            action=action,
            details=details,
        )

    @staticmethod
    def activity_added(session: FamilySession, activity: Activity) -> ActionLogEntry:
        return ActionLogEntryBuilder.for_session(
            session,
            ActionType.ADD_ACTIVITY.value,
            {
                "activityType": activity.type.value,
                "date": activity.date.isoformat(),
                "activityId": activity.id,
            },
        )

    @staticmethod
    def activity_deleted(session: FamilySession, activity: Activity) -> ActionLogEntry:
        return ActionLogEntryBuilder.for_session(
            session,
            ActionType.DELETE_ACTIVITY.value,
            {
                "activityType": activity.type.value,
                "date": activity.date.isoformat(),
                "activityId": activity.id,
            },
        )
