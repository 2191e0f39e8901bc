"""Contract calendar package."""

from caretaker_ledger.contracts.calendar import (
    BEFORE_CONTRACT,
    add_months,
    anniversary_window,
    contract_year,
    contract_year_key,
    contract_year_label,
    current_month_key,
    list_contract_years,
    month_end,
    month_key,
    month_key_to_date,
    month_start,
    months_between,
    parse_date,
    year_key,
)

__all__ = [
    "BEFORE_CONTRACT",
    "add_months",
    "anniversary_window",
    "contract_year",
    "contract_year_key",
    "contract_year_label",
    "current_month_key",
    "list_contract_years",
    "month_end",
    "month_key",
    "month_key_to_date",
    "month_start",
    "months_between",
    "parse_date",
    "year_key",
]
