"""Configuration package."""

from caretaker_ledger.config.settings import (
    AppSettings,
    AuthSettings,
    BackendSettings,
    CacheSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuthSettings",
    "BackendSettings",
    "CacheSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
