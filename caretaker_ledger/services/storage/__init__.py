from caretaker_ledger.services.storage.interface import (
    BackendError,
    DuplicateError,
    KeyValueBackendInterface,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    StorageUnavailableError,
)
from caretaker_ledger.services.storage import keys
from caretaker_ledger.services.storage.local_cache import LocalCache, scoped_key
from caretaker_ledger.services.storage.rest_backend import (
    PostgrestClient,
    RestKeyValueBackend,
)
from caretaker_ledger.services.storage.family_storage import FamilyStorage
from caretaker_ledger.services.storage.migrations import (
    CURRENT_SCHEMA_VERSION,
    run_migrations,
)

__all__ = [
    "BackendError",
    "CURRENT_SCHEMA_VERSION",
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
    "keys",
    "run_migrations",
    "scoped_key",
]
