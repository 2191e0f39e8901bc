"""Form validation package."""

from caretaker_ledger.validation.validator import (
    CredentialValidator,
    RegistrationForm,
    parse_amount,
    parse_positive_amount,
)

__all__ = [
    "CredentialValidator",
    "RegistrationForm",
    "parse_amount",
    "parse_positive_amount",
]
