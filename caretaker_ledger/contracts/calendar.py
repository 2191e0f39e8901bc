"""
Contract Calendar

Maps calendar dates to contract years (12-calendar-month windows anchored
on the contract start date, indexed from 0) and to month keys ("YYYY-MM").

DESIGN DECISION: contract_year counts whole calendar-month differences
and ignores the day of month. A date in the anniversary month but before
the anniversary day already belongs to the next contract year. Stored
yearly payment keys depend on this arithmetic, so it must not become
day-aware.
"""

import calendar
from datetime import date, datetime
from typing import Optional, Union

from caretaker_ledger.models.family import ContractYear

DateLike = Union[date, datetime, str]

BEFORE_CONTRACT = -1


def parse_date(value: DateLike) -> date:
    """Accept a date, a datetime or an ISO string ("2024-01-15...")."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def month_key(value: DateLike) -> str:
    d = parse_date(value)
    return f"{d.year:04d}-{d.month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    return month_key(today or date.today())


def month_key_to_date(key: str) -> date:
    """First day of the month a month key names."""
    return date.fromisoformat(f"{key}-01")


def month_start(value: DateLike) -> date:
    return parse_date(value).replace(day=1)


def month_end(value: DateLike) -> date:
    d = parse_date(value)
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def add_months(value: DateLike, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    d = parse_date(value)
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: DateLike, end: DateLike) -> int:
    """Calendar-month distance, ignoring the day of month."""
    s = parse_date(start)
    e = parse_date(end)
    return (e.year - s.year) * 12 + (e.month - s.month)


def contract_year(value: DateLike, contract_start_date: Optional[DateLike]) -> int:
    """
    Zero-based contract year of a date.

    Returns -1 for dates before the contract start, and 0 when no
    contract start date is known.
    """
    if not contract_start_date:
        return 0
    d = parse_date(value)
    start = parse_date(contract_start_date)
    if d < start:
        return BEFORE_CONTRACT
    return months_between(start, d) // 12


def contract_year_key(value: DateLike, contract_start_date: Optional[DateLike]) -> str:
    return year_key(contract_year(value, contract_start_date))


def year_key(index: int) -> str:
    return f"year_{index}"


def contract_year_label(index: int) -> str:
    return "Year 1" if index == 0 else f"Year {index + 1}"


def list_contract_years(
    contract_start_date: Optional[DateLike],
    include_future: bool = True,
    today: Optional[date] = None,
) -> list[ContractYear]:
    """
    Contract years around today: up to five past years, the current one,
    and two future ones when include_future is set.
    """
    if not contract_start_date:
        return []

    start = parse_date(contract_start_date)
    current = contract_year(today or date.today(), start)

    first = max(0, current - 5)
    last = current + 2 if include_future else current

    return [
        ContractYear(
            year=index,
            key=year_key(index),
            start_date=add_months(start, index * 12),
            end_date=add_months(start, (index + 1) * 12),
            label=contract_year_label(index),
        )
        for index in range(first, last + 1)
    ]


def anniversary_window(
    contract_start_date: DateLike,
    today: Optional[date] = None,
) -> tuple[date, date]:
    """
    Day-aware anniversary year containing today.

    Only the vacation allowance summary uses this; payslips use
    contract_year.
    """
    start = parse_date(contract_start_date)
    today = today or date.today()

    def anniversary(year: int) -> date:
        day = min(start.day, calendar.monthrange(year, start.month)[1])
        return date(year, start.month, day)

    this_year = anniversary(today.year)
    if today < this_year:
        return anniversary(today.year - 1), this_year
    return this_year, anniversary(today.year + 1)
