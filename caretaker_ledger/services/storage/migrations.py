"""
Stored Data Migrations

Older data carries shapes the current models no longer use. Each
migration runs once per family, in order, and the highest applied
version is kept under the schemaVersion key.

1. yearlyPayments: drop the legacy bituahLeumi field (it moved into the
   monthly payslip), and nest a flat pre-contract-year set under year_0.
2. yearlyPayments: fill missing or zero Havraa fields with defaults.
"""

from typing import Callable

import structlog

from caretaker_ledger.models.family import YearlyPaymentSet
from caretaker_ledger.services.storage import keys
from caretaker_ledger.services.storage.family_storage import FamilyStorage

logger = structlog.get_logger(__name__)

LEGACY_YEARLY_FIELDS = ("bituahLeumi",)


def _is_flat_payment_set(data: dict) -> bool:
    return any(not str(k).startswith("year_") for k in data)


def strip_legacy_yearly_fields(storage: FamilyStorage) -> bool:
    """Remove bituahLeumi from every yearly payment set. Returns True if data changed."""
    data = storage.get(keys.YEARLY_PAYMENTS, {})
    if not isinstance(data, dict) or not data:
        return False

    changed = False
    if _is_flat_payment_set(data):
        data = {"year_0": data}
        changed = True

    for year_key, payment_set in data.items():
        if not isinstance(payment_set, dict):
            continue
        for field in LEGACY_YEARLY_FIELDS:
            if field in payment_set:
                del payment_set[field]
                changed = True

    if changed:
        storage.set(keys.YEARLY_PAYMENTS, data)
    return changed


def fill_havraa_defaults(storage: FamilyStorage) -> bool:
    """Give every yearly payment set its Havraa amount and days."""
    data = storage.get(keys.YEARLY_PAYMENTS, {})
    if not isinstance(data, dict) or not data:
        return False

    defaults = YearlyPaymentSet()
    changed = False
    for payment_set in data.values():
        if not isinstance(payment_set, dict):
            continue
        if "havraaAmountPerDay" not in payment_set:
            payment_set["havraaAmountPerDay"] = defaults.havraa_amount_per_day
            changed = True
        if "havraaDays" not in payment_set:
            payment_set["havraaDays"] = defaults.havraa_days
            changed = True

    if changed:
        storage.set(keys.YEARLY_PAYMENTS, data)
    return changed


MIGRATIONS: list[tuple[int, Callable[[FamilyStorage], bool]]] = [
    (1, strip_legacy_yearly_fields),
    (2, fill_havraa_defaults),
]

CURRENT_SCHEMA_VERSION = MIGRATIONS[-1][0]


def run_migrations(storage: FamilyStorage) -> int:
    """
    Apply every migration newer than the stored schema version.

    Returns:
        The schema version the family is at afterwards
    """
    try:
        version = int(storage.get(keys.SCHEMA_VERSION, 0) or 0)
    except (TypeError, ValueError):
        version = 0

    for target, migration in MIGRATIONS:
        if target <= version:
            continue
        changed = migration(storage)
        version = target
        storage.set(keys.SCHEMA_VERSION, version)
        logger.info(
            "migration_applied",
            family_id=storage.family_id,
            migration=migration.__name__,
            version=version,
            changed=changed,
        )

    return version
