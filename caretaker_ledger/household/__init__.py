"""Household settings package."""

from caretaker_ledger.household.settings_service import HouseholdSettingsService

__all__ = ["HouseholdSettingsService"]
