"""
Credential and Registration Validation

DESIGN DECISION: Forms are validated before any storage or network call.
Every problem is collected, not just the first one, so a screen can mark
all offending fields at once.

Checks:
- Required fields presence
- Password confirmation match
- Password length and character set
- Username character set
- Monthly base amount is a positive number
- Contract start date is an ISO date

IMPORTANT: Validation NEVER silently fixes input (beyond trimming
surrounding whitespace of the username). It reports issues.
"""

import math
import unicodedata
from datetime import date
from typing import Optional, Union

from pydantic import BaseModel

from caretaker_ledger.config import get_settings
from caretaker_ledger.models import UserRole, ValidationIssue, ValidationResult


class RegistrationForm(BaseModel):
    """Raw registration input, exactly as typed."""

    name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    contract_start_date: Optional[Union[str, date]] = None
    monthly_base_amount: Optional[Union[str, float, int]] = None


def _has_control_characters(value: str) -> bool:
    return any(unicodedata.category(ch).startswith("C") for ch in value)


def parse_amount(value, default: float = 0.0) -> float:
    """Parse a typed-in number, falling back to default when it is not one."""
    if value is None or isinstance(value, bool):
        return default
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(amount) or math.isinf(amount):
        return default
    return amount


def parse_positive_amount(value) -> Optional[float]:
    """Parse an amount, returning None unless it is a finite number > 0."""
    amount = parse_amount(value)
    return amount if amount > 0 else None


class CredentialValidator:
    """
    Validates registration and new-user forms.

    Example:
        result = CredentialValidator().validate_registration(form)
        if not result.is_valid:
            show(result.first_error)
    """

    def __init__(self, min_password_length: Optional[int] = None):
        self._min_password_length = (
            min_password_length
            if min_password_length is not None
            else get_settings().auth.min_password_length
        )

    def _validate_username(self, username: str) -> list[ValidationIssue]:
        issues = []
        if any(ch.isspace() for ch in username.strip()) or _has_control_characters(username):
            issues.append(ValidationIssue(
                field="username",
                issue_type="invalid_characters",
                message="Username must not contain spaces or control characters",
                suggested_fix="Use letters, digits and punctuation only",
            ))
        return issues

    def _validate_password(
        self,
        password: str,
        confirm_password: Optional[str] = None,
        check_confirmation: bool = False,
    ) -> list[ValidationIssue]:
        issues = []

        if check_confirmation and password != confirm_password:
            issues.append(ValidationIssue(
                field="confirm_password",
                issue_type="mismatch",
                message="Passwords do not match",
                suggested_fix="Type the same password twice",
            ))

        if len(password) < self._min_password_length:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=f"Password must be at least {self._min_password_length} characters",
            ))

        if _has_control_characters(password) or any(
            ch.isspace() and ch != " " for ch in password
        ):
            issues.append(ValidationIssue(
                field="password",
                issue_type="invalid_characters",
                message="Password must not contain control characters",
            ))

        return issues

    def validate_registration(self, form: RegistrationForm) -> ValidationResult:
        """Validate the registration form of a new family."""
        issues = []

        required = {
            "name": form.name,
            "username": form.username,
            "password": form.password,
            "contract_start_date": form.contract_start_date,
            "monthly_base_amount": form.monthly_base_amount,
        }
        missing = [
            field for field, value in required.items()
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        for field in missing:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="All fields are required",
            ))
        if missing:
            return ValidationResult(issues=issues)

        issues.extend(self._validate_username(form.username))
        issues.extend(self._validate_password(
            form.password,
            form.confirm_password,
            check_confirmation=True,
        ))

        if parse_positive_amount(form.monthly_base_amount) is None:
            issues.append(ValidationIssue(
                field="monthly_base_amount",
                issue_type="invalid_value",
                message="Monthly base amount must be a valid positive number",
            ))

        if not isinstance(form.contract_start_date, date):
            try:
                date.fromisoformat(str(form.contract_start_date).strip())
            except ValueError:
                issues.append(ValidationIssue(
                    field="contract_start_date",
                    issue_type="invalid_date",
                    message="Contract start date must be a date (YYYY-MM-DD)",
                ))

        return ValidationResult(issues=issues)

    def validate_new_user(
        self,
        username: Optional[str],
        password: Optional[str],
        role: Union[str, UserRole, None] = UserRole.CARETAKER,
    ) -> ValidationResult:
        """Validate a user an admin adds to the family."""
        issues = []

        if not username or not username.strip() or not password:
            issues.append(ValidationIssue(
                field="username" if not username or not username.strip() else "password",
                issue_type="missing",
                message="All fields are required",
            ))
            return ValidationResult(issues=issues)

        issues.extend(self._validate_username(username))
        issues.extend(self._validate_password(password))

        try:
            UserRole(role)
        except ValueError:
            issues.append(ValidationIssue(
                field="role",
                issue_type="invalid_value",
                message="Role must be admin or caretaker",
            ))

        return ValidationResult(issues=issues)
