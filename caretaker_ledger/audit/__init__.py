"""Action logging package."""

from caretaker_ledger.audit.logger import ActionLogger, configure_log_level

__all__ = ["ActionLogger", "configure_log_level"]
