"""Payslip computation package."""

from caretaker_ledger.payslips.calculator import (
    BITUAH_LEUMI_RATE,
    FIRING_PAYMENT_RATE,
    HAVRAA_KEY,
    PENSION_RATE,
    YEARLY_PAYMENT_KEYS,
    ContractStartDateRequiredError,
    PayslipError,
    apply_payment_status,
    base_amount_for,
    compute_breakdown,
    expected_yearly_expenses,
    monthly_one_time_payments,
    shevah_total,
    to_decimal,
    visible_yearly_payments,
    yearly_one_time_payments,
)
from caretaker_ledger.payslips.service import PayslipExportRow, PayslipService

__all__ = [
    "BITUAH_LEUMI_RATE",
    "FIRING_PAYMENT_RATE",
    "HAVRAA_KEY",
    "PENSION_RATE",
    "YEARLY_PAYMENT_KEYS",
    "ContractStartDateRequiredError",
    "PayslipError",
    "PayslipExportRow",
    "PayslipService",
    "apply_payment_status",
    "base_amount_for",
    "compute_breakdown",
    "expected_yearly_expenses",
    "monthly_one_time_payments",
    "shevah_total",
    "to_decimal",
    "visible_yearly_payments",
    "yearly_one_time_payments",
]
