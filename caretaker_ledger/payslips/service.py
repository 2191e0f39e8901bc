"""
Payslip Service

Stateful side of the payslip screen: reads settings, the worklog and
Shevah coverage to build a month's PayslipView, and persists payment
statuses and partial amounts in the "payslips" key (month key ->
PayslipRecord).

DESIGN DECISION: Yearly payment statuses are stored in the record of the
month being viewed, under yearly_payment_statuses[year_key]. A status set
while viewing March is not in February's record. The export reads the
last month that carries a status for each yearly payment.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from caretaker_ledger.auth import require_admin
from caretaker_ledger.contracts import (
    contract_year,
    list_contract_years,
    month_key,
    month_key_to_date,
    parse_date,
    year_key,
)
from caretaker_ledger.models import (
    FamilySession,
    PaymentStatus,
    PayslipRecord,
    PayslipView,
    UserRole,
)
from caretaker_ledger.payslips.calculator import (
    HAVRAA_KEY,
    apply_payment_status,
    base_amount_for,
    compute_breakdown,
    monthly_one_time_payments,
    visible_yearly_payments,
    yearly_one_time_payments,
)
from caretaker_ledger.services.storage import FamilyStorage, keys

if TYPE_CHECKING:
    from caretaker_ledger.household import HouseholdSettingsService
    from caretaker_ledger.ledgers import ShevahCoverageService, WorklogService

logger = structlog.get_logger(__name__)


class PayslipExportRow(BaseModel):
    """
    One flat row for a spreadsheet exporter.

    kind is "month" for a month's main row, "one_time" for a monthly
    one-time payment under it, and "yearly" for a contract year payment.
    """

    kind: str
    label: str
    month_key: Optional[str] = None
    contract_start_date: Optional[str] = None
    base_amount: Optional[Decimal] = None
    shevah_total: Optional[Decimal] = None
    remaining_base: Optional[Decimal] = None
    pension: Optional[Decimal] = None
    firing_payment: Optional[Decimal] = None
    bituah_leumi: Optional[Decimal] = None
    payment_status: Optional[PaymentStatus] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    one_time_status: Optional[PaymentStatus] = None


class PayslipService:
    """
    Example:
        payslips = PayslipService(storage, household, worklog, shevah)
        view = payslips.monthly_view(date(2024, 3, 1))
        payslips.set_payment_status(view.month_key, "paid")
    """

    def __init__(
        self,
        storage: FamilyStorage,
        household: "HouseholdSettingsService",
        worklog: "WorklogService",
        shevah: "ShevahCoverageService",
        session: Optional[FamilySession] = None,
    ):
        self._storage = storage
        self._household = household
        self._worklog = worklog
        self._shevah = shevah
        self._session = session if session is not None else storage.session

    def _require_admin(self) -> None:
        require_admin(self._session, "change payment status")

    @property
    def _role(self) -> UserRole:
        return self._session.role if self._session else UserRole.CARETAKER

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _records(self) -> dict[str, dict]:
        raw = self._storage.get(keys.PAYSLIPS, {}) or {}
        return raw if isinstance(raw, dict) else {}

    def get_record(self, month: str) -> PayslipRecord:
        """The month's record, or an empty one. Nothing is written."""
        raw = self._records().get(month)
        if not raw:
            return PayslipRecord()
        try:
            return PayslipRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("payslip_record_invalid", month_key=month, error=str(e))
            return PayslipRecord()

    def _save_record(self, month: str, record: PayslipRecord) -> bool:
        records = self._records()
        records[month] = record.to_storage()
        return self._storage.set(keys.PAYSLIPS, records)

    # -------------------------------------------------------------------------
    # View
    # -------------------------------------------------------------------------

    def _year_index(self, on_date: date) -> Optional[int]:
        start = self._household.contract_start_date()
        if start is None:
            return None
        index = contract_year(on_date, start)
        return index if index >= 0 else None

    def monthly_view(self, on_date: Union[str, date, None] = None) -> PayslipView:
        """Everything the payslip screen shows for the month of on_date."""
        on_date = parse_date(on_date) if on_date is not None else date.today()
        month = month_key(on_date)
        record = self.get_record(month)

        base = base_amount_for(
            self._household.monthly_base_amount(),
            self._household.yearly_base_amounts(),
            on_date.year,
        )
        breakdown = compute_breakdown(base, self._shevah.total(month))

        one_time = monthly_one_time_payments(
            self._worklog.activities_for_month(month),
            self._household.activity_charges(),
            record,
        )

        index = self._year_index(on_date)
        key = year_key(index) if index is not None else None
        yearly = []
        if key is not None:
            yearly_set = self._household.yearly_payment_set(key, persist_missing=True)
            yearly = visible_yearly_payments(
                yearly_one_time_payments(yearly_set, record, key),
                self._role,
            )

        return PayslipView(
            month_key=month,
            contract_year=index if index is not None else 0,
            year_key=key,
            breakdown=breakdown,
            payment_status=record.payment_status,
            monthly_paid_amount=Decimal(str(record.monthly_paid_amount)),
            monthly_one_time_payments=one_time,
            yearly_payments=yearly,
            has_shevah_entries=self._shevah.has_entries(month),
        )

    # -------------------------------------------------------------------------
    # Monthly payslip
    # -------------------------------------------------------------------------

    def set_payment_status(self, month: str, status, paid_amount=0) -> PayslipRecord:
        self._require_admin()
        record = self.get_record(month)
        new_status, paid = apply_payment_status(status, paid_amount)
        record.payment_status = new_status
        record.monthly_paid_amount = float(paid)
        self._save_record(month, record)
        return record

    def set_monthly_paid_amount(self, month: str, amount) -> PayslipRecord:
        """Partial amount of the monthly payslip. Setting one marks it partial."""
        return self.set_payment_status(month, PaymentStatus.PARTIAL, amount)

    # -------------------------------------------------------------------------
    # Monthly one-time payments
    # -------------------------------------------------------------------------

    def set_one_time_payment_status(
        self,
        month: str,
        payment_id: str,
        status,
        paid_amount=0,
    ) -> PayslipRecord:
        self._require_admin()
        record = self.get_record(month)
        new_status, paid = apply_payment_status(status, paid_amount)
        record.monthly_payment_statuses[payment_id] = new_status
        record.monthly_payment_paid_amounts[payment_id] = float(paid)
        self._save_record(month, record)
        return record

    def set_one_time_paid_amount(self, month: str, payment_id: str, amount) -> PayslipRecord:
        return self.set_one_time_payment_status(month, payment_id, PaymentStatus.PARTIAL, amount)

    # -------------------------------------------------------------------------
    # Yearly one-time payments
    # -------------------------------------------------------------------------

    def set_yearly_payment_status(
        self,
        month: str,
        year: str,
        payment_key: str,
        status,
        paid_amount=0,
    ) -> PayslipRecord:
        """Status of a yearly payment of contract year `year`, kept in `month`'s record."""
        self._require_admin()
        record = self.get_record(month)
        new_status, paid = apply_payment_status(status, paid_amount)
        record.yearly_payment_statuses.setdefault(year, {})[payment_key] = new_status
        record.yearly_payment_paid_amounts.setdefault(year, {})[payment_key] = float(paid)
        self._save_record(month, record)
        return record

    def set_yearly_paid_amount(self, month: str, year: str, payment_key: str, amount) -> PayslipRecord:
        return self.set_yearly_payment_status(month, year, payment_key, PaymentStatus.PARTIAL, amount)

    def set_yearly_base_amount(self, calendar_year: int, amount, today: Optional[date] = None) -> float:
        return self._household.set_yearly_base_amount(calendar_year, amount, today)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_rows(self, today: Optional[date] = None) -> list[PayslipExportRow]:
        """
        Every month that has a record, oldest first, then the yearly
        payments of each contract year.
        """
        records = self._records()
        months = sorted(records)
        start = self._household.contract_start_date()
        start_text = start.isoformat() if start else None
        charges = self._household.activity_charges()
        rows: list[PayslipExportRow] = []

        for month in months:
            record = self.get_record(month)
            first_day = month_key_to_date(month)
            base = base_amount_for(
                self._household.monthly_base_amount(),
                self._household.yearly_base_amounts(),
                first_day.year,
            )
            breakdown = compute_breakdown(base, self._shevah.total(month))
            rows.append(PayslipExportRow(
                kind="month",
                label=first_day.strftime("%B %Y"),
                month_key=month,
                contract_start_date=start_text,
                base_amount=breakdown.base_amount,
                shevah_total=breakdown.shevah_total,
                remaining_base=breakdown.remaining_base,
                pension=breakdown.pension,
                firing_payment=breakdown.firing_payment,
                bituah_leumi=breakdown.bituah_leumi,
                payment_status=record.payment_status,
            ))
            for payment in monthly_one_time_payments(
                self._worklog.activities_for_month(month), charges, record
            ):
                rows.append(PayslipExportRow(
                    kind="one_time",
                    label=f"{payment.type} {payment.date}",
                    month_key=month,
                    description=payment.type,
                    amount=payment.amount,
                    one_time_status=payment.payment_status,
                ))

        if start is None:
            return rows

        for contract in list_contract_years(start, include_future=True, today=today):
            yearly_set = self._household.yearly_payment_set(contract.key, persist_missing=False)
            for payment in yearly_one_time_payments(yearly_set, None, contract.key):
                if payment.key != HAVRAA_KEY and payment.amount <= 0:
                    continue
                status = PaymentStatus.PENDING
                for month in months:
                    stored = self.get_record(month).yearly_statuses_for(contract.key).get(payment.key)
                    if stored:
                        status = stored
                description = payment.key
                if payment.amount_per_day is not None:
                    description = f"havraa ({payment.amount_per_day} x {payment.days} days)"
                rows.append(PayslipExportRow(
                    kind="yearly",
                    label=f"{contract.label} - {description}",
                    contract_start_date=start_text,
                    payment_status=status,
                    description=description,
                    amount=payment.amount,
                    one_time_status=status,
                ))

        return rows
