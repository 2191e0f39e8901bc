"""
Open Tasks Query

DESIGN DECISION: The dashboard's task list is computed, never stored.
It reads the current month's payslip record and reports what is still
not paid:

- the monthly payslip itself
- monthly one-time payments from the worklog (pending/partial counts)
- yearly payments of the current contract year with an amount > 0

Nothing is written, not even default yearly payment sets.
"""

from datetime import date
from typing import Optional

from caretaker_ledger.contracts import contract_year, month_key, year_key
from caretaker_ledger.household import HouseholdSettingsService
from caretaker_ledger.ledgers import WorklogService
from caretaker_ledger.models import OpenTask, PaymentStatus, Screen, YearlyPaymentSet
from caretaker_ledger.payslips import (
    PayslipService,
    monthly_one_time_payments,
    yearly_one_time_payments,
)
from caretaker_ledger.services.storage import FamilyStorage, keys


def _describe(pending: int, partial: int, noun: str) -> str:
    if pending and partial:
        return f"{pending} pending, {partial} partially paid"
    if pending:
        return f"{pending} {noun}(s) pending"
    return f"{partial} {noun}(s) partially paid"


class OpenTaskQuery:
    """
    Outstanding payables of the current month.

    GUARANTEES:
    - Only reads storage
    - An empty list means everything is paid
    """

    def __init__(
        self,
        storage: FamilyStorage,
        household: HouseholdSettingsService,
        worklog: WorklogService,
        payslips: PayslipService,
    ):
        self._storage = storage
        self._household = household
        self._worklog = worklog
        self._payslips = payslips

    def execute(self, today: Optional[date] = None) -> list[OpenTask]:
        today = today or date.today()
        month = month_key(today)
        record = self._payslips.get_record(month)
        tasks: list[OpenTask] = []

        if record.payment_status != PaymentStatus.PAID:
            tasks.append(OpenTask(
                id="monthly-payslip",
                title="Caretaker payslips",
                description=(
                    "Monthly payslip partially paid"
                    if record.payment_status == PaymentStatus.PARTIAL
                    else "Monthly payslip payment pending"
                ),
                status=record.payment_status,
                screen=Screen.PAYSLIPS.value,
            ))

        payments = monthly_one_time_payments(
            self._worklog.activities_for_month(month),
            self._household.activity_charges(),
            record,
        )
        task = self._unpaid_task(
            "monthly-payments",
            "Monthly one-time payments",
            "monthly payment",
            [p.payment_status for p in payments],
        )
        if task:
            tasks.append(task)

        task = self._yearly_task(record, today)
        if task:
            tasks.append(task)

        return tasks

    def _yearly_task(self, record, today: date) -> Optional[OpenTask]:
        start = self._household.contract_start_date()
        if start is None:
            return None
        index = contract_year(today, start)
        if index < 0:
            return None

        key = year_key(index)
        stored = (self._storage.get(keys.YEARLY_PAYMENTS, {}) or {}).get(key)
        if not isinstance(stored, dict):
            return None

        yearly_set = YearlyPaymentSet.model_validate(stored)
        payments = [p for p in yearly_one_time_payments(yearly_set, record, key) if p.amount > 0]
        return self._unpaid_task(
            "yearly-payments",
            "Yearly one-time payments",
            "yearly payment",
            [p.payment_status for p in payments],
        )

    @staticmethod
    def _unpaid_task(task_id: str, title: str, noun: str, statuses) -> Optional[OpenTask]:
        pending = sum(1 for s in statuses if s == PaymentStatus.PENDING)
        partial = sum(1 for s in statuses if s == PaymentStatus.PARTIAL)
        if not pending and not partial:
            return None
        return OpenTask(
            id=task_id,
            title=title,
            description=_describe(pending, partial, noun),
            pending_count=pending,
            partial_count=partial,
            screen=Screen.PAYSLIPS.value,
        )
