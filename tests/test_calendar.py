"""Tests for contract year and month key arithmetic."""

from datetime import date

from caretaker_ledger.contracts import (
    BEFORE_CONTRACT,
    add_months,
    anniversary_window,
    contract_year,
    contract_year_key,
    list_contract_years,
    month_key,
    month_key_to_date,
)


class TestMonthKeys:
    """Tests for month keys."""

    def test_month_key_from_date_and_string(self):
        """Test month key formats."""
        assert month_key(date(2024, 3, 9)) == "2024-03"
        assert month_key("2024-11-30T10:00:00") == "2024-11"

    def test_month_key_to_date(self):
        """Test the first day of a month key."""
        assert month_key_to_date("2025-02") == date(2025, 2, 1)

    def test_add_months_clamps_day(self):
        """Test that Jan 31 plus one month is the end of February."""
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 11, 15), 3) == date(2024, 2, 15)


class TestContractYear:
    """Tests for the contract year index."""

    def test_payment_in_second_contract_year(self):
        """Test contract start 2024-01-15, payment 2025-02-10 is year 1."""
        assert contract_year(date(2025, 2, 10), "2024-01-15") == 1
        assert contract_year_key(date(2025, 2, 10), "2024-01-15") == "year_1"

    def test_first_year(self):
        """Test dates inside the first twelve months."""
        assert contract_year(date(2024, 1, 15), "2024-01-15") == 0
        assert contract_year(date(2024, 12, 31), "2024-01-15") == 0

    def test_day_of_month_is_ignored(self):
        """Test that the anniversary month already counts as the next year."""
        assert contract_year(date(2025, 1, 1), "2024-01-15") == 1

    def test_before_contract(self):
        """Test dates before the contract start."""
        assert contract_year(date(2023, 12, 31), "2024-01-15") == BEFORE_CONTRACT

    def test_no_contract_start(self):
        """Test that a missing start date means year 0."""
        assert contract_year(date(2025, 6, 1), None) == 0


class TestContractYearList:
    """Tests for the enumerated contract years."""

    def test_list_around_today(self):
        """Test labels and windows of listed years."""
        years = list_contract_years("2024-01-15", include_future=True, today=date(2025, 2, 10))
        assert [y.year for y in years] == [0, 1, 2, 3]
        second = years[1]
        assert second.key == "year_1"
        assert second.label == "Year 2"
        assert second.start_date == date(2025, 1, 15)
        assert second.end_date == date(2026, 1, 15)

    def test_list_without_future(self):
        """Test that include_future=False stops at the current year."""
        years = list_contract_years("2024-01-15", include_future=False, today=date(2025, 2, 10))
        assert [y.year for y in years] == [0, 1]

    def test_at_most_five_past_years(self):
        """Test the window of past years."""
        years = list_contract_years("2010-01-01", include_future=False, today=date(2024, 6, 1))
        assert [y.year for y in years] == [9, 10, 11, 12, 13, 14]

    def test_no_start_date(self):
        """Test that nothing is listed without a contract start date."""
        assert list_contract_years(None) == []


class TestAnniversaryWindow:
    """Tests for the day-aware allowance year."""

    def test_before_anniversary(self):
        """Test a date before this year's anniversary."""
        start, end = anniversary_window("2024-01-15", today=date(2025, 1, 10))
        assert start == date(2024, 1, 15)
        assert end == date(2025, 1, 15)

    def test_on_anniversary(self):
        """Test the anniversary day itself."""
        start, end = anniversary_window("2024-01-15", today=date(2025, 1, 15))
        assert start == date(2025, 1, 15)
        assert end == date(2026, 1, 15)


class TestContractYearProperties:
    """Tests for properties over many dates."""

    def test_monotonic_and_steps_every_twelve_months(self):
        """Test that the index never decreases and steps once per 12 months."""
        start = date(2024, 1, 15)
        previous = contract_year(start, start)
        for offset in range(1, 61):
            current = contract_year(add_months(start, offset), start)
            assert current >= previous
            assert current == offset // 12
            previous = current
