"""
Payslip Models

A PayslipRecord is what we persist per month key: payment statuses and
partially paid amounts. Everything else on the payslip screen is derived
from settings, the worklog, and Shevah coverage, and is modelled by the
computed views below.

DESIGN DECISION: The record is a struct with default-initialised maps.
Older data grew these maps lazily, one handler at a time; loading through
this model gives every month the same shape.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from caretaker_ledger.models.family import CamelModel


class PaymentStatus(str, Enum):
    """
    Payment status of a payable item.

    Any state may move to any other. Leaving or skipping PARTIAL
    resets the paid amount to zero.
    """
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class PayslipRecord(CamelModel):
    """Persisted payment state for one month key."""

    payment_status: PaymentStatus = PaymentStatus.PENDING
    monthly_paid_amount: float = 0.0
    monthly_payment_statuses: dict[str, PaymentStatus] = Field(default_factory=dict)
    monthly_payment_paid_amounts: dict[str, float] = Field(default_factory=dict)
    # year key -> payment key -> value, attached to the month being viewed
    yearly_payment_statuses: dict[str, dict[str, PaymentStatus]] = Field(default_factory=dict)
    yearly_payment_paid_amounts: dict[str, dict[str, float]] = Field(default_factory=dict)

    def yearly_statuses_for(self, year_key: str) -> dict[str, PaymentStatus]:
        return self.yearly_payment_statuses.get(year_key, {})

    def yearly_paid_amounts_for(self, year_key: str) -> dict[str, float]:
        return self.yearly_payment_paid_amounts.get(year_key, {})


class PayslipBreakdown(BaseModel):
    """Monthly base payslip, derived from base amount and Shevah offset."""

    base_amount: Decimal
    shevah_total: Decimal
    remaining_base: Decimal
    pension: Decimal
    firing_payment: Decimal
    bituah_leumi: Decimal
    monthly_total: Decimal


class MonthlyOneTimePayment(BaseModel):
    """A payable produced by a chargeable worklog activity."""

    id: str = Field(..., description="'{type}_{date}', shared by same-day duplicates")
    type: str
    date: str
    amount: Decimal
    payment_status: PaymentStatus = PaymentStatus.PENDING
    paid_amount: Decimal = Decimal("0")


class YearlyOneTimePayment(BaseModel):
    """A payable owed once per contract year."""

    key: str
    amount: Decimal
    payment_status: PaymentStatus = PaymentStatus.PENDING
    paid_amount: Decimal = Decimal("0")
    amount_per_day: Optional[Decimal] = None
    days: Optional[Decimal] = None


class PayslipView(BaseModel):
    """Everything the payslip screen shows for one month."""

    month_key: str
    contract_year: int
    year_key: Optional[str] = None
    breakdown: PayslipBreakdown
    payment_status: PaymentStatus
    monthly_paid_amount: Decimal
    monthly_one_time_payments: list[MonthlyOneTimePayment] = Field(default_factory=list)
    yearly_payments: list[YearlyOneTimePayment] = Field(default_factory=list)
    has_shevah_entries: bool = False

    @property
    def monthly_one_time_total(self) -> Decimal:
        return sum((p.amount for p in self.monthly_one_time_payments), Decimal("0"))

    @property
    def yearly_total(self) -> Decimal:
        return sum((p.amount for p in self.yearly_payments), Decimal("0"))


class ExpectedYearlyExpenses(BaseModel):
    """
    Advisory projection of one contract year.

    Assumes no Shevah coverage (worst case). Not a payable.
    """

    yearly_base: Decimal
    vacation_days_cost: Decimal
    holiday_vacation_days_cost: Decimal
    pocket_money_cost: Decimal
    shabbat_cost: Decimal
    yearly_one_time_total: Decimal
    total: Decimal


class OpenTask(BaseModel):
    """An outstanding payable shown on the dashboard."""

    id: str
    title: str
    description: str
    status: Optional[PaymentStatus] = None
    pending_count: int = 0
    partial_count: int = 0
    screen: str = "payslips"
