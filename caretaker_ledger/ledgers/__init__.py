"""Worklog and monthly ledgers package."""

from caretaker_ledger.ledgers.finances import (
    ElderLedgerService,
    LastRowDeletionError,
    LedgerError,
    ShevahCoverageService,
    ShevahCoverageSummary,
)
from caretaker_ledger.ledgers.worklog import WorklogService

__all__ = [
    "ElderLedgerService",
    "LastRowDeletionError",
    "LedgerError",
    "ShevahCoverageService",
    "ShevahCoverageSummary",
    "WorklogService",
]
