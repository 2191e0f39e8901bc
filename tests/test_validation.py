"""Tests for registration and new user form validation."""

import pytest

from caretaker_ledger.validation import (
    CredentialValidator,
    RegistrationForm,
    parse_amount,
    parse_positive_amount,
)


def form(**overrides) -> RegistrationForm:
    data = {
        "name": "Cohen family",
        "username": "dana",
        "password": "secret1",
        "confirm_password": "secret1",
        "contract_start_date": "2024-01-15",
        "monthly_base_amount": "6250",
    }
    data.update(overrides)
    return RegistrationForm(**data)


class TestParseAmount:
    """Tests for typed-in numbers."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5),
        (7, 7.0),
        ("", 0.0),
        ("abc", 0.0),
        (None, 0.0),
        ("nan", 0.0),
        ("inf", 0.0),
        (True, 0.0),
    ])
    def test_parse_amount(self, raw, expected):
        """Test parsing with the zero default."""
        assert parse_amount(raw) == expected

    def test_positive_amount(self):
        """Test that zero and negatives are not positive amounts."""
        assert parse_positive_amount("6250") == 6250.0
        assert parse_positive_amount("0") is None
        assert parse_positive_amount("-3") is None


class TestRegistrationValidation:
    """Tests for the registration form."""

    def test_valid_form(self):
        """Test a valid form."""
        result = CredentialValidator().validate_registration(form())
        assert result.is_valid
        assert result.first_error is None

    def test_missing_fields_reported_each(self):
        """Test that every missing field is reported."""
        result = CredentialValidator().validate_registration(
            form(name=" ", monthly_base_amount=None)
        )
        assert {i.field for i in result.issues} == {"name", "monthly_base_amount"}
        assert result.first_error == "All fields are required"

    def test_all_problems_collected(self):
        """Test that several problems are reported together."""
        result = CredentialValidator().validate_registration(form(
            username="da na",
            password="abc",
            confirm_password="abd",
            contract_start_date="15/01/2024",
            monthly_base_amount="zero",
        ))
        assert {i.issue_type for i in result.issues} == {
            "invalid_characters", "mismatch", "too_short", "invalid_value", "invalid_date",
        }
        assert result.error_count == 5

    def test_control_characters_in_password(self):
        """Test that tabs and control characters are refused."""
        result = CredentialValidator().validate_registration(
            form(password="sec\tret", confirm_password="sec\tret")
        )
        assert not result.is_valid

    def test_configurable_minimum_length(self):
        """Test a stricter minimum length."""
        result = CredentialValidator(min_password_length=10).validate_registration(form())
        assert result.first_error == "Password must be at least 10 characters"


class TestNewUserValidation:
    """Tests for users added by an admin."""

    def test_valid_caretaker(self):
        """Test a valid new caretaker."""
        assert CredentialValidator().validate_new_user("maria", "care1").is_valid

    def test_missing_password(self):
        """Test the required fields message."""
        result = CredentialValidator().validate_new_user("maria", "")
        assert result.issues[0].field == "password"

    def test_unknown_role(self):
        """Test that roles other than admin and caretaker are refused."""
        result = CredentialValidator().validate_new_user("maria", "care1", role="owner")
        assert result.first_error == "Role must be admin or caretaker"
