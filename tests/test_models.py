"""
Tests for Caretaker Ledger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Service tests against the cache-only or in-memory-backed storage
3. No real network calls in tests (httpx.MockTransport)
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from caretaker_ledger.models import (
    Activity,
    ActivityCharges,
    ActivityType,
    ActionLogEntryBuilder,
    ActionType,
    ExpenseEntry,
    ExpenseEntryType,
    FamilyAccount,
    FamilySession,
    PaymentStatus,
    PayslipRecord,
    ShevahCoverageRow,
    User,
    UserRole,
    ValidationIssue,
    ValidationResult,
    YearlyPaymentSet,
)


class TestFamilyModels:
    """Tests for family, user and session models."""

    def test_family_account_rejects_non_positive_base(self):
        """Test that the monthly base amount must be positive."""
        with pytest.raises(ValueError):
            FamilyAccount(
                family_id="family_1_abc",
                name="Cohen",
                contract_start_date=date(2024, 1, 15),
                monthly_base_amount=0,
            )

    def test_user_password_column_alias(self):
        """Test that the hash is stored under the password column."""
        user = User(username="dana", password="$2b$04$hash", family_id="family_1_abc")
        row = user.to_row()
        assert row["password"] == "$2b$04$hash"
        assert "password" not in user.public_dict()
        assert "password_hash" not in user.public_dict()

    def test_session_expiry(self):
        """Test that a session expires at the max age."""
        now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        session = FamilySession(username="dana", family_id="f", timestamp=now)
        assert session.is_valid(now + timedelta(hours=23), timedelta(hours=24))
        assert session.is_expired(now + timedelta(hours=24), timedelta(hours=24))

    def test_session_round_trips_camel_case(self):
        """Test that the stored session uses camelCase keys."""
        session = FamilySession(username="dana", family_id="f", role=UserRole.CARETAKER)
        stored = session.to_storage()
        assert stored["familyId"] == "f"
        assert stored["loggedIn"] is True
        assert FamilySession.model_validate(stored).role == UserRole.CARETAKER


class TestLedgerModels:
    """Tests for worklog and ledger records."""

    def test_activity_payment_id(self):
        """Test that the payment id is type plus date, not the activity id."""
        first = Activity(type=ActivityType.SHABBAT, date=date(2024, 3, 2))
        second = Activity(type=ActivityType.SHABBAT, date=date(2024, 3, 2))
        assert first.id != second.id
        assert first.payment_id == second.payment_id == "shabbat_2024-03-02"
        assert first.month_key == "2024-03"

    def test_shevah_row_defaults(self):
        """Test the default Shevah row of 12.5 hours at 44."""
        row = ShevahCoverageRow()
        assert row.hours == 12.5
        assert row.amount_per_hour == 44.0
        assert row.total == 550.0

    def test_expense_entry_keeps_matching_value(self):
        """Test that an hours entry drops its amount."""
        entry = ExpenseEntry(name="Cleaning", type=ExpenseEntryType.HOURS, amount=10, hours=3)
        assert entry.hours == 3
        assert entry.amount is None

    def test_activity_charges_lookup(self):
        """Test charge lookup by activity type."""
        charges = ActivityCharges()
        assert charges.charge_for(ActivityType.SHABBAT) == 426.4
        assert charges.charge_for(ActivityType.POCKET_MONEY) == 100.0

    def test_yearly_payment_set_ignores_legacy_fields(self):
        """Test that bituahLeumi in old data is ignored."""
        payment_set = YearlyPaymentSet.model_validate({
            "medicalInsurance": 300,
            "bituahLeumi": 225,
        })
        assert payment_set.medical_insurance == 300
        assert payment_set.havraa_total == 870.0
        assert "bituahLeumi" not in payment_set.to_storage()


class TestPayslipRecord:
    """Tests for the persisted payslip record."""

    def test_record_defaults(self):
        """Test that every map exists on a fresh record."""
        record = PayslipRecord()
        assert record.payment_status == PaymentStatus.PENDING
        assert record.monthly_payment_statuses == {}
        assert record.yearly_statuses_for("year_0") == {}

    def test_record_loads_partial_legacy_shape(self):
        """Test that a record written before the maps existed loads."""
        record = PayslipRecord.model_validate({"paymentStatus": "paid"})
        assert record.payment_status == PaymentStatus.PAID
        assert record.yearly_paid_amounts_for("year_1") == {}


class TestActionLogModels:
    """Tests for action log entries."""

    def test_activity_added_entry(self):
        """Test the entry built for an added activity."""
        session = FamilySession(username="maria", family_id="f", role=UserRole.CARETAKER)
        activity = Activity(type=ActivityType.VACATION_DAY, date=date(2024, 5, 1))
        entry = ActionLogEntryBuilder.activity_added(session, activity)
        assert entry.action == ActionType.ADD_ACTIVITY.value
        assert entry.role == UserRole.CARETAKER
        assert entry.details["activityType"] == "vacationDay"
        assert entry.details["date"] == "2024-05-01"

    def test_log_dict_is_flat(self):
        """Test conversion for structured logging."""
        session = FamilySession(username="dana", family_id="f")
        entry = ActionLogEntryBuilder.for_session(session, "add_activity", {"x": 1})
        log = entry.to_log_dict()
        assert log["family_id"] == "f"
        assert log["role"] == "admin"


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_result_first_error(self):
        """Test first error and validity."""
        result = ValidationResult(issues=[
            ValidationIssue(field="a", issue_type="info", message="note", severity="info"),
            ValidationIssue(field="b", issue_type="missing", message="All fields are required"),
        ])
        assert not result.is_valid
        assert result.error_count == 1
        assert result.first_error == "All fields are required"

    def test_empty_result_is_valid(self):
        """Test that no issues means valid."""
        assert ValidationResult().is_valid
