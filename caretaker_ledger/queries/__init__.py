"""Dashboard query package."""

from caretaker_ledger.queries.open_tasks import OpenTaskQuery

__all__ = ["OpenTaskQuery"]
