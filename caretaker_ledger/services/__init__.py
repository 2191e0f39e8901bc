"""Services package."""

from caretaker_ledger.services.storage import (
    BackendError,
    DuplicateError,
    FamilyStorage,
    KeyValueBackendInterface,
    LocalCache,
    NotFoundError,
    PostgrestClient,
    QuotaExceededError,
    RestKeyValueBackend,
    StorageError,
    StorageUnavailableError,
    run_migrations,
)

__all__ = [
    # Storage
    "BackendError",
    "DuplicateError",
    "FamilyStorage",
    "KeyValueBackendInterface",
    "LocalCache",
    "NotFoundError",
    "PostgrestClient",
    "QuotaExceededError",
    "RestKeyValueBackend",
    "StorageError",
    "StorageUnavailableError",
    "run_migrations",
]
