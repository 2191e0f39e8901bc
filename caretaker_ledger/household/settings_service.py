"""
Household Settings

The per-family values every payslip is derived from: contract start
date, monthly base amount (with per-calendar-year overrides), flat
activity charges, yearly one-time payments per contract year, and the
frequencies used to project a year of expenses.

Reads are open to every role; changes are admin-only.
"""

from datetime import date
from typing import Any, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

from caretaker_ledger.auth import require_admin
from caretaker_ledger.config import get_settings
from caretaker_ledger.contracts import (
    contract_year,
    list_contract_years,
    parse_date,
    year_key,
)
from caretaker_ledger.models import (
    ActivityCharges,
    CalculationParams,
    ContractYear,
    ExpectedYearlyExpenses,
    FamilySession,
    YearlyPaymentSet,
)
from caretaker_ledger.payslips.calculator import (
    ContractStartDateRequiredError,
    expected_yearly_expenses,
)
from caretaker_ledger.services.storage import FamilyStorage, keys
from caretaker_ledger.validation import parse_amount

logger = structlog.get_logger(__name__)


def _field_name(model: Type[BaseModel], key: str) -> str:
    """Accept either the Python field name or its stored camelCase alias."""
    for name, info in model.model_fields.items():
        if key in (name, info.alias):
            return name
    raise ValueError(f"{model.__name__} has no field '{key}'")


def _load(model: Type[BaseModel], raw: Any) -> Optional[BaseModel]:
    if not isinstance(raw, dict):
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning("settings_value_invalid", model=model.__name__, error=str(e))
        return None


class HouseholdSettingsService:
    """
    Settings of one family.

    Example:
        household = HouseholdSettingsService(storage)
        household.initialize_defaults()
        household.update_activity_charge("shabbat", 450)
    """

    def __init__(
        self,
        storage: FamilyStorage,
        session: Optional[FamilySession] = None,
    ):
        self._storage = storage
        self._session = session if session is not None else storage.session
        self._default_base = get_settings().app.default_monthly_base_amount

    def _require_admin(self, action: str) -> None:
        require_admin(self._session, action)

    def initialize_defaults(self) -> None:
        """Seed activity charges and yearly payments when the family has none."""
        if not self._storage.get(keys.ACTIVITY_CHARGES):
            self._storage.set(keys.ACTIVITY_CHARGES, ActivityCharges().to_storage())
        if not self._storage.get(keys.YEARLY_PAYMENTS):
            self._storage.set(
                keys.YEARLY_PAYMENTS,
                {year_key(0): YearlyPaymentSet().to_storage()},
            )

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    def contract_start_date(self) -> Optional[date]:
        raw = self._storage.get(keys.CONTRACT_START_DATE)
        if not raw:
            return None
        try:
            return parse_date(raw)
        except ValueError:
            logger.warning("contract_start_date_invalid", value=raw)
            return None

    def set_contract_start_date(self, value) -> bool:
        self._require_admin("change the contract start date")
        return self._storage.set(keys.CONTRACT_START_DATE, parse_date(value).isoformat())

    async def save_contract_start_date(self, value) -> bool:
        """Like set_contract_start_date, but only True once the backend has it."""
        self._require_admin("change the contract start date")
        return await self._storage.set_to_backend(
            keys.CONTRACT_START_DATE,
            parse_date(value).isoformat(),
        )

    def contract_year_index(self, on_date: Optional[date] = None) -> int:
        return contract_year(on_date or date.today(), self.contract_start_date())

    def contract_years(
        self,
        include_future: bool = True,
        today: Optional[date] = None,
    ) -> list[ContractYear]:
        return list_contract_years(self.contract_start_date(), include_future, today)

    # -------------------------------------------------------------------------
    # Base amounts
    # -------------------------------------------------------------------------

    def monthly_base_amount(self) -> float:
        value = parse_amount(self._storage.get(keys.MONTHLY_BASE_AMOUNT), 0.0)
        return value if value > 0 else self._default_base

    def _valid_base_amount(self, amount) -> float:
        value = parse_amount(amount)
        if value <= 0:
            raise ValueError("Monthly base amount must be a valid positive number")
        return value

    def set_monthly_base_amount(self, amount) -> bool:
        self._require_admin("change the monthly base amount")
        return self._storage.set(keys.MONTHLY_BASE_AMOUNT, self._valid_base_amount(amount))

    async def save_monthly_base_amount(self, amount) -> bool:
        self._require_admin("change the monthly base amount")
        return await self._storage.set_to_backend(
            keys.MONTHLY_BASE_AMOUNT,
            self._valid_base_amount(amount),
        )

    def yearly_base_amounts(self) -> dict[str, float]:
        """Per-calendar-year base amount overrides, keyed by "YYYY"."""
        raw = self._storage.get(keys.YEARLY_BASE_AMOUNTS, {}) or {}
        return {str(k): parse_amount(v) for k, v in raw.items()}

    def set_yearly_base_amount(
        self,
        calendar_year: int,
        amount,
        today: Optional[date] = None,
    ) -> float:
        """
        Override the base amount of one calendar year.

        An amount that is not a positive number falls back to the default
        base amount. Overriding the current year also updates the monthly
        base amount. Returns the stored amount.
        """
        self._require_admin("change the base amount")
        value = parse_amount(amount)
        if value <= 0:
            value = self._default_base

        amounts = self.yearly_base_amounts()
        amounts[str(int(calendar_year))] = value
        self._storage.set(keys.YEARLY_BASE_AMOUNTS, amounts)

        if int(calendar_year) == (today or date.today()).year:
            self._storage.set(keys.MONTHLY_BASE_AMOUNT, value)
        return value

    # -------------------------------------------------------------------------
    # Activity charges
    # -------------------------------------------------------------------------

    def activity_charges(self) -> ActivityCharges:
        return _load(ActivityCharges, self._storage.get(keys.ACTIVITY_CHARGES)) or ActivityCharges()

    def update_activity_charge(self, field: str, value) -> ActivityCharges:
        self._require_admin("change activity charges")
        data = self.activity_charges().model_dump()
        data[_field_name(ActivityCharges, field)] = parse_amount(value)
        charges = ActivityCharges.model_validate(data)
        self._storage.set(keys.ACTIVITY_CHARGES, charges.to_storage())
        return charges

    # -------------------------------------------------------------------------
    # Yearly one-time payments
    # -------------------------------------------------------------------------

    def _yearly_payments_data(self) -> dict[str, Any]:
        data = self._storage.get(keys.YEARLY_PAYMENTS, {}) or {}
        return data if isinstance(data, dict) else {}

    def yearly_payment_set(self, key: str, persist_missing: bool = True) -> YearlyPaymentSet:
        """
        Yearly payments of one contract year key ("year_N").

        A year with no stored set gets the defaults, stored right away
        when persist_missing is set.
        """
        data = self._yearly_payments_data()
        stored = _load(YearlyPaymentSet, data.get(key))
        if stored is not None:
            return stored

        payment_set = YearlyPaymentSet()
        if persist_missing:
            data[key] = payment_set.to_storage()
            self._storage.set(keys.YEARLY_PAYMENTS, data)
            logger.info("yearly_payments_defaulted", year_key=key, family_id=self._storage.family_id)
        return payment_set

    def yearly_payments(
        self,
        year_index: Optional[int] = None,
        today: Optional[date] = None,
    ) -> YearlyPaymentSet:
        """Yearly payments of a contract year (default: the current one)."""
        if year_index is None:
            year_index = max(0, self.contract_year_index(today))
        return self.yearly_payment_set(year_key(year_index), persist_missing=False)

    def update_yearly_payment(self, year_index: int, field: str, value) -> YearlyPaymentSet:
        self._require_admin("change yearly payments")
        key = year_key(year_index)
        data = self._yearly_payments_data()
        current = self.yearly_payment_set(key, persist_missing=False).model_dump()
        current[_field_name(YearlyPaymentSet, field)] = parse_amount(value)
        payment_set = YearlyPaymentSet.model_validate(current)
        data[key] = payment_set.to_storage()
        self._storage.set(keys.YEARLY_PAYMENTS, data)
        return payment_set

    # -------------------------------------------------------------------------
    # Expected yearly expenses
    # -------------------------------------------------------------------------

    def calculation_params(self) -> CalculationParams:
        return (
            _load(CalculationParams, self._storage.get(keys.CALCULATION_PARAMS))
            or CalculationParams()
        )

    def update_calculation_param(self, field: str, value) -> CalculationParams:
        self._require_admin("change calculation parameters")
        data = self.calculation_params().model_dump()
        data[_field_name(CalculationParams, field)] = parse_amount(value)
        params = CalculationParams.model_validate(data)
        self._storage.set(keys.CALCULATION_PARAMS, params.to_storage())
        return params

    def calculate_expected_yearly_expenses(
        self,
        today: Optional[date] = None,
    ) -> ExpectedYearlyExpenses:
        """
        Advisory projection of the current contract year.

        Raises:
            ContractStartDateRequiredError: No contract start date is set
        """
        if self.contract_start_date() is None:
            raise ContractStartDateRequiredError()

        return expected_yearly_expenses(
            self.monthly_base_amount(),
            self.activity_charges(),
            self.calculation_params(),
            self.yearly_payments(today=today),
        )
