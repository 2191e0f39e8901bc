"""Tests for stored data migrations."""

from caretaker_ledger.services.storage import CURRENT_SCHEMA_VERSION, run_migrations
from caretaker_ledger.services.storage.migrations import (
    fill_havraa_defaults,
    strip_legacy_yearly_fields,
)


class TestStripLegacyFields:
    """Tests for dropping bituahLeumi from yearly payments."""

    def test_flat_set_nested_under_first_year(self, storage):
        """Test that a flat legacy set becomes year_0."""
        storage.set("yearlyPayments", {"medicalInsurance": 300, "bituahLeumi": 225})
        assert strip_legacy_yearly_fields(storage) is True
        assert storage.get("yearlyPayments") == {"year_0": {"medicalInsurance": 300}}

    def test_field_removed_from_every_year(self, storage):
        """Test per-year sets."""
        storage.set("yearlyPayments", {
            "year_0": {"taagidPayment": 2000, "bituahLeumi": 1},
            "year_1": {"taagidPayment": 2100},
        })
        strip_legacy_yearly_fields(storage)
        data = storage.get("yearlyPayments")
        assert "bituahLeumi" not in data["year_0"]
        assert data["year_1"] == {"taagidPayment": 2100}

    def test_nothing_to_do(self, storage):
        """Test that clean or missing data is not rewritten."""
        assert strip_legacy_yearly_fields(storage) is False
        storage.set("yearlyPayments", {"year_0": {"taagidPayment": 2000}})
        assert strip_legacy_yearly_fields(storage) is False


class TestFillHavraaDefaults:
    """Tests for Havraa defaults."""

    def test_missing_fields_filled(self, storage):
        """Test that missing Havraa fields get defaults."""
        storage.set("yearlyPayments", {
            "year_0": {"taagidPayment": 2000},
            "year_1": {"havraaAmountPerDay": 180, "havraaDays": 6},
        })
        assert fill_havraa_defaults(storage) is True
        data = storage.get("yearlyPayments")
        assert data["year_0"] == {"taagidPayment": 2000, "havraaAmountPerDay": 174.0, "havraaDays": 5.0}
        assert data["year_1"] == {"havraaAmountPerDay": 180, "havraaDays": 6}

    def test_stored_zero_kept(self, storage):
        """Test that a year stored without Havraa keeps its zero days."""
        storage.set("yearlyPayments", {
            "year_0": {"havraaAmountPerDay": 174, "havraaDays": 0},
        })
        assert fill_havraa_defaults(storage) is False
        assert storage.get("yearlyPayments")["year_0"]["havraaDays"] == 0


class TestRunMigrations:
    """Tests for the migration runner."""

    def test_runs_all_and_records_version(self, storage):
        """Test a family with legacy data."""
        storage.set("yearlyPayments", {"taagidPayment": 2000, "bituahLeumi": 225})
        assert run_migrations(storage) == CURRENT_SCHEMA_VERSION
        assert storage.get("schemaVersion") == CURRENT_SCHEMA_VERSION
        assert storage.get("yearlyPayments") == {
            "year_0": {"taagidPayment": 2000, "havraaAmountPerDay": 174.0, "havraaDays": 5.0},
        }

    def test_applied_once(self, storage):
        """Test that migrations at or below the stored version are skipped."""
        run_migrations(storage)
        storage.set("yearlyPayments", {"year_0": {"bituahLeumi": 1}})
        run_migrations(storage)
        assert storage.get("yearlyPayments") == {"year_0": {"bituahLeumi": 1}}

    def test_unreadable_version_starts_over(self, storage):
        """Test that a corrupt version runs everything."""
        storage.set("schemaVersion", "two")
        assert run_migrations(storage) == CURRENT_SCHEMA_VERSION
