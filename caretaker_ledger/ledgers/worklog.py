"""
Worklog

Activities a caretaker records (vacation days, shabbat, pocket money ...),
stored per month key: {"2024-01": [activity, ...], ...}.

Every add and delete is written to the action log so admins can review
what was recorded.
"""

from datetime import date
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from caretaker_ledger.audit import ActionLogger
from caretaker_ledger.contracts import anniversary_window, parse_date
from caretaker_ledger.models import (
    Activity,
    ActionLogEntryBuilder,
    ActivityType,
    RecordId,
    VacationSummary,
)
from caretaker_ledger.services.storage import FamilyStorage, keys

logger = structlog.get_logger(__name__)

YEARLY_ALLOWANCE = 12


class WorklogService:
    def __init__(self, storage: FamilyStorage, actions: Optional[ActionLogger] = None):
        self._storage = storage
        self._actions = actions or ActionLogger(storage)

    def _load(self) -> dict[str, list[Activity]]:
        raw = self._storage.get(keys.WORKLOG, {}) or {}
        worklog: dict[str, list[Activity]] = {}
        for month, entries in raw.items():
            activities = []
            for entry in entries or []:
                try:
                    activities.append(Activity.model_validate(entry))
                except ValidationError as e:
                    logger.warning("activity_invalid", month=month, error=str(e))
            worklog[month] = activities
        return worklog

    def _save(self, worklog: dict[str, list[Activity]]) -> bool:
        return self._storage.set(
            keys.WORKLOG,
            {month: [a.to_storage() for a in activities] for month, activities in worklog.items()},
        )

    def add_activity(
        self,
        activity_type: Union[str, ActivityType],
        on_date: Union[str, date],
    ) -> Activity:
        """Record an activity in its month's bucket and log it."""
        activity = Activity(type=ActivityType(activity_type), date=parse_date(on_date))
        worklog = self._load()
        worklog.setdefault(activity.month_key, []).append(activity)
        self._save(worklog)

        self._actions.log(ActionLogEntryBuilder.activity_added(self._storage.session, activity))
        return activity

    def delete_activity(self, activity_id: RecordId) -> Optional[Activity]:
        """Delete an activity wherever it is. Returns it, or None if unknown."""
        worklog = self._load()
        deleted = None
        for month, activities in worklog.items():
            kept = []
            for activity in activities:
                if str(activity.id) == str(activity_id):
                    deleted = activity
                else:
                    kept.append(activity)
            worklog[month] = kept

        if deleted is None:
            return None

        self._save(worklog)
        self._actions.log(ActionLogEntryBuilder.activity_deleted(self._storage.session, deleted))
        return deleted

    def activities_for_month(self, month_key: str) -> list[Activity]:
        return self._load().get(month_key, [])

    def all_activities(self) -> list[Activity]:
        return [a for activities in self._load().values() for a in activities]

    def calendar_events(self) -> list[dict]:
        """Activities as calendar events (id, ISO date, type)."""
        return [
            {"id": a.id, "date": a.date.isoformat(), "type": a.type.value}
            for a in self.all_activities()
        ]

    def vacation_summary(
        self,
        activity_type: Union[str, ActivityType] = ActivityType.VACATION_DAY,
        today: Optional[date] = None,
    ) -> VacationSummary:
        """
        Allowance usage in the anniversary year containing today.

        Both window ends are inclusive. Without a contract start date
        nothing counts as used.
        """
        start = self._storage.get(keys.CONTRACT_START_DATE)
        if not start:
            return VacationSummary()

        window_start, window_end = anniversary_window(start, today)
        kind = ActivityType(activity_type)
        used = sum(
            1 for a in self.all_activities()
            if a.type == kind and window_start <= a.date <= window_end
        )
        return VacationSummary(
            total=YEARLY_ALLOWANCE,
            used=used,
            remaining=max(0, YEARLY_ALLOWANCE - used),
        )
