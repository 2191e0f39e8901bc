"""Authentication and role gate package."""

from caretaker_ledger.auth.directory import (
    LocalUserDirectory,
    RestUserDirectory,
    UserDirectoryInterface,
)
from caretaker_ledger.auth.errors import (
    AuthError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RegistrationValidationError,
)
from caretaker_ledger.auth.passwords import hash_password, verify_password
from caretaker_ledger.auth.roles import (
    allowed_screens,
    can_access,
    can_edit_financials,
    require_admin,
)
from caretaker_ledger.auth.service import AuthService, generate_family_id
from caretaker_ledger.auth.session import SESSION_KEY, SessionStore

__all__ = [
    "AuthError",
    "AuthService",
    "DuplicateUsernameError",
    "InvalidCredentialsError",
    "LocalUserDirectory",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "RegistrationValidationError",
    "RestUserDirectory",
    "SESSION_KEY",
    "SessionStore",
    "UserDirectoryInterface",
    "allowed_screens",
    "can_access",
    "can_edit_financials",
    "generate_family_id",
    "hash_password",
    "require_admin",
    "verify_password",
]
