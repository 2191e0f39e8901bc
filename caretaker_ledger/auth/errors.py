"""Authentication and authorization exceptions."""

from typing import Optional

from caretaker_ledger.models import ValidationResult


class AuthError(Exception):
    """Base exception for auth operations."""
    pass


class InvalidCredentialsError(AuthError):
    """
    Unknown username or wrong password.

    Both cases carry the same message so a caller cannot tell which
    usernames exist.
    """

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class DuplicateUsernameError(AuthError):
    """The username is already taken (usernames are global)."""

    def __init__(self, username: str):
        super().__init__("Username already exists")
        self.username = username


class RegistrationValidationError(AuthError):
    """The submitted form failed validation; nothing was stored."""

    def __init__(self, result: ValidationResult):
        super().__init__(result.first_error or "Invalid input")
        self.result = result


class PermissionDeniedError(AuthError):
    """The session's role may not perform the operation."""

    def __init__(self, message: str = "Only admins can perform this action"):
        super().__init__(message)


class NotAuthenticatedError(AuthError):
    """No valid session."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Not logged in")
