"""
Payslip Calculator

Pure functions over settings, worklog activities and Shevah coverage.
Nothing here reads or writes storage.

DESIGN DECISION: All arithmetic is done in Decimal. Stored amounts are
floats, so every input goes through Decimal(str(x)) first; the statutory
rates are exact decimal literals. 6250 * 0.0833 is 520.625, not
520.6249999.

Statutory rates apply to the remaining base (base minus Shevah):
    pension        6.5%
    firing payment 8.33%
    bituah leumi   3.6%

Havraa is yearly-only and never part of the monthly total.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from caretaker_ledger.models import (
    CHARGEABLE_ACTIVITY_TYPES,
    Activity,
    ActivityCharges,
    CalculationParams,
    ExpectedYearlyExpenses,
    MonthlyOneTimePayment,
    PaymentStatus,
    PayslipBreakdown,
    PayslipRecord,
    ShevahCoverageRow,
    UserRole,
    YearlyOneTimePayment,
    YearlyPaymentSet,
)

Number = Union[Decimal, float, int, str]

PENSION_RATE = Decimal("0.065")
FIRING_PAYMENT_RATE = Decimal("0.0833")
BITUAH_LEUMI_RATE = Decimal("0.036")

ZERO = Decimal("0")

HAVRAA_KEY = "havraa"
YEARLY_PAYMENT_KEYS = ("medicalInsurance", "taagidPayment", "taagidHandling")
CARETAKER_VISIBLE_YEARLY_KEYS = frozenset({"medicalInsurance"})


class PayslipError(Exception):
    """Base exception for payslip computations."""
    pass


class ContractStartDateRequiredError(PayslipError):
    """The computation needs a contract start date and none is set."""

    def __init__(self):
        super().__init__("Please set contract start date first")


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def base_amount_for(
    monthly_base: Number,
    yearly_base_amounts: Optional[Mapping],
    calendar_year: int,
) -> Decimal:
    """
    Base amount of a calendar year.

    A per-year override wins over the monthly base amount. Zero or
    missing overrides are ignored.
    """
    overrides = yearly_base_amounts or {}
    override = overrides.get(str(calendar_year), overrides.get(calendar_year))
    if override:
        return to_decimal(override)
    return to_decimal(monthly_base)


def shevah_total(rows: Iterable[ShevahCoverageRow]) -> Decimal:
    return sum(
        (to_decimal(r.hours) * to_decimal(r.amount_per_hour) for r in rows),
        ZERO,
    )


def compute_breakdown(base_amount: Number, shevah: Number) -> PayslipBreakdown:
    """
    Monthly payslip. The remaining base is not clamped and may be negative.
    """
    base = to_decimal(base_amount)
    covered = to_decimal(shevah)
    remaining = base - covered
    pension = remaining * PENSION_RATE
    firing_payment = remaining * FIRING_PAYMENT_RATE
    bituah_leumi = remaining * BITUAH_LEUMI_RATE
    return PayslipBreakdown(
        base_amount=base,
        shevah_total=covered,
        remaining_base=remaining,
        pension=pension,
        firing_payment=firing_payment,
        bituah_leumi=bituah_leumi,
        monthly_total=remaining + pension + firing_payment + bituah_leumi,
    )


def monthly_one_time_payments(
    activities: Iterable[Activity],
    charges: ActivityCharges,
    record: Optional[PayslipRecord] = None,
) -> list[MonthlyOneTimePayment]:
    """
    Payables produced by chargeable activities of one month.

    Identified by "{type}_{date}": two activities of the same type on the
    same day are one payable, charged once.
    """
    record = record or PayslipRecord()
    payments: dict[str, MonthlyOneTimePayment] = {}

    for activity in sorted(activities, key=lambda a: a.date):
        if activity.type not in CHARGEABLE_ACTIVITY_TYPES:
            continue
        charge = to_decimal(charges.charge_for(activity.type))
        if charge <= 0:
            continue
        payment_id = activity.payment_id
        if payment_id in payments:
            continue
        payments[payment_id] = MonthlyOneTimePayment(
            id=payment_id,
            type=activity.type.value,
            date=activity.date.isoformat(),
            amount=charge,
            payment_status=record.monthly_payment_statuses.get(payment_id, PaymentStatus.PENDING),
            paid_amount=to_decimal(record.monthly_payment_paid_amounts.get(payment_id, 0)),
        )

    return list(payments.values())


def yearly_one_time_payments(
    yearly_set: YearlyPaymentSet,
    record: Optional[PayslipRecord],
    year_key: str,
) -> list[YearlyOneTimePayment]:
    """
    Payables of one contract year: Havraa first (when both its amount
    per day and its days are set), then the fixed yearly payments.
    """
    record = record or PayslipRecord()
    statuses = record.yearly_statuses_for(year_key)
    paid_amounts = record.yearly_paid_amounts_for(year_key)

    def line(key: str, amount: Decimal, **extra) -> YearlyOneTimePayment:
        return YearlyOneTimePayment(
            key=key,
            amount=amount,
            payment_status=statuses.get(key, PaymentStatus.PENDING),
            paid_amount=to_decimal(paid_amounts.get(key, 0)),
            **extra,
        )

    payments = []
    per_day = to_decimal(yearly_set.havraa_amount_per_day)
    days = to_decimal(yearly_set.havraa_days)
    if per_day and days:
        payments.append(line(HAVRAA_KEY, per_day * days, amount_per_day=per_day, days=days))

    amounts = {
        "medicalInsurance": yearly_set.medical_insurance,
        "taagidPayment": yearly_set.taagid_payment,
        "taagidHandling": yearly_set.taagid_handling,
    }
    for key in YEARLY_PAYMENT_KEYS:
        payments.append(line(key, to_decimal(amounts[key])))

    return payments


def visible_yearly_payments(
    payments: list[YearlyOneTimePayment],
    role: Union[str, UserRole],
) -> list[YearlyOneTimePayment]:
    """Caretakers only see the medical insurance line."""
    if UserRole(role) == UserRole.ADMIN:
        return payments
    return [p for p in payments if p.key in CARETAKER_VISIBLE_YEARLY_KEYS]


def apply_payment_status(
    status: Union[str, PaymentStatus],
    paid_amount: Number = 0,
) -> tuple[PaymentStatus, Decimal]:
    """
    New (status, paid amount) of a payable.

    Any status may follow any other; a status other than partial resets
    the paid amount to zero.
    """
    status = PaymentStatus(status)
    if status != PaymentStatus.PARTIAL:
        return status, ZERO
    return status, to_decimal(paid_amount)


def expected_yearly_expenses(
    monthly_base: Number,
    charges: ActivityCharges,
    params: CalculationParams,
    yearly_set: YearlyPaymentSet,
) -> ExpectedYearlyExpenses:
    """
    Projection of one contract year, assuming no Shevah coverage.

    Havraa counts once, through the yearly one-time total.
    """
    breakdown = compute_breakdown(monthly_base, ZERO)
    yearly_base = breakdown.monthly_total * 12

    vacation = to_decimal(charges.vacation_day) * to_decimal(params.vacation_days_per_year)
    holiday_vacation = (
        to_decimal(charges.holiday_vacation_day)
        * to_decimal(params.holiday_vacation_days_per_year)
    )
    pocket_money = to_decimal(charges.pocket_money) * to_decimal(params.pocket_money_weeks_per_year)
    shabbat = (
        to_decimal(charges.shabbat)
        * to_decimal(params.shabbat_per_month)
        * to_decimal(params.shabbat_months_per_year)
    )
    one_time = sum(
        (p.amount for p in yearly_one_time_payments(yearly_set, None, "")),
        ZERO,
    )

    return ExpectedYearlyExpenses(
        yearly_base=yearly_base,
        vacation_days_cost=vacation,
        holiday_vacation_days_cost=holiday_vacation,
        pocket_money_cost=pocket_money,
        shabbat_cost=shabbat,
        yearly_one_time_total=one_time,
        total=yearly_base + vacation + holiday_vacation + pocket_money + shabbat + one_time,
    )
