"""
Shevah Coverage and Elder Ledgers

Month-keyed lists of rows edited on the admin screens:

- shevahCoverage: hours of third-party funded care per month. These
  offset the caretaker's base pay on the payslip.
- elderFinancials: the elder's monthly income lines.
- elderExpenses: the elder's monthly expense lines (money or hours).

DESIGN DECISION: An empty month is shown with sensible content without
writing anything. Shevah shows a default row (12.5 h at 44); the elder
ledgers show the most recent earlier month that has entries. The shown
rows only become the month's data once the admin edits them.
"""

from decimal import Decimal
from typing import Generic, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from caretaker_ledger.auth import require_admin
from caretaker_ledger.models import (
    ExpenseEntry,
    ExpenseEntryType,
    FinancialEntry,
    RecordId,
    ShevahCoverageRow,
)
from caretaker_ledger.payslips.calculator import (
    FIRING_PAYMENT_RATE,
    PENSION_RATE,
    shevah_total,
    to_decimal,
)
from caretaker_ledger.services.storage import FamilyStorage, keys
from caretaker_ledger.validation import parse_amount

logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LastRowDeletionError(LedgerError):
    """A month's Shevah coverage must keep at least one row."""

    def __init__(self):
        super().__init__("Cannot delete the last row")


class ShevahCoverageSummary(BaseModel):
    total: Decimal
    pension: Decimal
    firing_payment: Decimal


class MonthlyRows(Generic[RowT]):
    """Load/save of one month-keyed list of rows."""

    def __init__(self, storage: FamilyStorage, key: str, model: Type[RowT]):
        self._storage = storage
        self._key = key
        self._model = model

    def load(self) -> dict[str, list[RowT]]:
        raw = self._storage.get(self._key, {}) or {}
        data: dict[str, list[RowT]] = {}
        for month, rows in raw.items():
            parsed = []
            for row in rows or []:
                try:
                    parsed.append(self._model.model_validate(row))
                except ValidationError as e:
                    logger.warning("ledger_row_invalid", key=self._key, month=month, error=str(e))
            data[month] = parsed
        return data

    def stored(self, month: str) -> list[RowT]:
        return self.load().get(month, [])

    def save(self, month: str, rows: list[RowT]) -> bool:
        raw = self._storage.get(self._key, {}) or {}
        raw[month] = [r.to_storage() for r in rows]
        return self._storage.set(self._key, raw)


def _find(rows: list, row_id: RecordId) -> Optional[int]:
    for index, row in enumerate(rows):
        if str(row.id) == str(row_id):
            return index
    return None


class ShevahCoverageService:
    """
    Shevah coverage rows per month.

    Example:
        shevah = ShevahCoverageService(storage)
        shevah.add_row("2024-03", hours=10, amount_per_hour=44)
        shevah.total("2024-03")
    """

    def __init__(self, storage: FamilyStorage):
        self._storage = storage
        self._rows = MonthlyRows(storage, keys.SHEVAH_COVERAGE, ShevahCoverageRow)

    def _require_admin(self) -> None:
        require_admin(self._storage.session, "edit Shevah coverage")

    def rows(self, month: str) -> list[ShevahCoverageRow]:
        """Rows of the month, or a single unsaved default row with a stable id."""
        return self._rows.stored(month) or [ShevahCoverageRow(id=f"default_{month}")]

    def has_entries(self, month: str) -> bool:
        return bool(self._rows.stored(month))

    def add_row(
        self,
        month: str,
        hours: float = 12.5,
        amount_per_hour: float = 44.0,
    ) -> ShevahCoverageRow:
        self._require_admin()
        row = ShevahCoverageRow(hours=hours, amount_per_hour=amount_per_hour)
        self._rows.save(month, self.rows(month) + [row])
        return row

    def update_row(self, month: str, row_id: RecordId, hours, amount_per_hour) -> ShevahCoverageRow:
        self._require_admin()
        rows = self.rows(month)
        index = _find(rows, row_id)
        if index is None:
            raise KeyError(f"No Shevah row {row_id} in {month}")
        rows[index] = ShevahCoverageRow(
            id=rows[index].id,
            hours=parse_amount(hours),
            amount_per_hour=parse_amount(amount_per_hour),
        )
        self._rows.save(month, rows)
        return rows[index]

    def delete_row(self, month: str, row_id: RecordId) -> bool:
        """
        Raises:
            LastRowDeletionError: row_id is the month's only row

        Returns:
            False if the month has no row with row_id
        """
        self._require_admin()
        rows = self.rows(month)
        index = _find(rows, row_id)
        if index is None:
            return False
        if len(rows) == 1:
            raise LastRowDeletionError()
        del rows[index]
        return self._rows.save(month, rows)

    def total(self, month: str) -> Decimal:
        """Coverage total from stored rows only; the default row counts for nothing."""
        return shevah_total(self._rows.stored(month))

    def summary(self, month: str) -> ShevahCoverageSummary:
        """Totals of the rows as shown, with pension and firing payment on top."""
        total = shevah_total(self.rows(month))
        return ShevahCoverageSummary(
            total=total,
            pension=total * PENSION_RATE,
            firing_payment=total * FIRING_PAYMENT_RATE,
        )


class ElderLedgerService:
    """
    The elder's monthly financials (income) and expenses.

    Both carry forward: a month without entries shows the most recent
    earlier month that has some, without saving them.
    """

    def __init__(self, storage: FamilyStorage):
        self._storage = storage
        self._financials = MonthlyRows(storage, keys.ELDER_FINANCIALS, FinancialEntry)
        self._expenses = MonthlyRows(storage, keys.ELDER_EXPENSES, ExpenseEntry)

    def _require_admin(self) -> None:
        require_admin(self._storage.session, "edit elder finances")

    @staticmethod
    def _carried_forward(data: dict[str, list], month: str) -> list:
        if data.get(month):
            return list(data[month])
        for key in sorted(data, reverse=True):
            if key < month and data[key]:
                return list(data[key])
        return []

    # -------------------------------------------------------------------------
    # Financials
    # -------------------------------------------------------------------------

    def financial_entries(self, month: str) -> list[FinancialEntry]:
        return self._carried_forward(self._financials.load(), month)

    def add_financial(self, month: str, name: str, amount) -> FinancialEntry:
        self._require_admin()
        entry = FinancialEntry(name=name, amount=parse_amount(amount))
        self._financials.save(month, self.financial_entries(month) + [entry])
        return entry

    def update_financial(self, month: str, entry_id: RecordId, name: str, amount) -> FinancialEntry:
        self._require_admin()
        entries = self.financial_entries(month)
        index = _find(entries, entry_id)
        if index is None:
            raise KeyError(f"No financial entry {entry_id} in {month}")
        entries[index] = FinancialEntry(id=entries[index].id, name=name, amount=parse_amount(amount))
        self._financials.save(month, entries)
        return entries[index]

    def delete_financial(self, month: str, entry_id: RecordId) -> bool:
        self._require_admin()
        entries = self.financial_entries(month)
        index = _find(entries, entry_id)
        if index is None:
            return False
        del entries[index]
        return self._financials.save(month, entries)

    def financials_total(self, month: str) -> Decimal:
        return sum((to_decimal(e.amount) for e in self.financial_entries(month)), Decimal("0"))

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def expense_entries(self, month: str) -> list[ExpenseEntry]:
        return self._carried_forward(self._expenses.load(), month)

    def add_expense(
        self,
        month: str,
        name: str,
        entry_type=ExpenseEntryType.AMOUNT,
        amount=None,
        hours=None,
    ) -> ExpenseEntry:
        self._require_admin()
        entry = ExpenseEntry(
            name=name,
            type=ExpenseEntryType(entry_type),
            amount=parse_amount(amount),
            hours=parse_amount(hours),
        )
        self._expenses.save(month, self.expense_entries(month) + [entry])
        return entry

    def update_expense(
        self,
        month: str,
        entry_id: RecordId,
        name: str,
        entry_type=ExpenseEntryType.AMOUNT,
        amount=None,
        hours=None,
    ) -> ExpenseEntry:
        self._require_admin()
        entries = self.expense_entries(month)
        index = _find(entries, entry_id)
        if index is None:
            raise KeyError(f"No expense entry {entry_id} in {month}")
        entries[index] = ExpenseEntry(
            id=entries[index].id,
            name=name,
            type=ExpenseEntryType(entry_type),
            amount=parse_amount(amount),
            hours=parse_amount(hours),
        )
        self._expenses.save(month, entries)
        return entries[index]

    def delete_expense(self, month: str, entry_id: RecordId) -> bool:
        self._require_admin()
        entries = self.expense_entries(month)
        index = _find(entries, entry_id)
        if index is None:
            return False
        del entries[index]
        return self._expenses.save(month, entries)

    def expenses_total_amount(self, month: str) -> Decimal:
        return sum((to_decimal(e.amount or 0) for e in self.expense_entries(month)), Decimal("0"))

    def expenses_total_hours(self, month: str) -> Decimal:
        return sum((to_decimal(e.hours or 0) for e in self.expense_entries(month)), Decimal("0"))

    def bottom_line(self, month: str) -> Decimal:
        """Financials total minus expense amounts (hours do not count)."""
        return self.financials_total(month) - self.expenses_total_amount(month)
