"""
Core Data Models for Caretaker Ledger

These models define the schemas of everything a family stores:
accounts, users, sessions, worklog activities, Shevah coverage rows,
elder financial/expense entries, and the settings that feed the payslip.

DESIGN DECISION: Persisted records use camelCase aliases so the JSON we
write to the cache and the backend keeps the shape existing data already
has. Python code always uses the snake_case field names.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def new_record_id() -> str:
    """Identifier for new records (older data may carry integer ids)."""
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for records stored as camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage(self) -> dict:
        """Dump in the stored (camelCase, JSON-safe) shape."""
        return self.model_dump(mode="json", by_alias=True)


RecordId = Union[int, str]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class UserRole(str, Enum):
    """
    Family member roles.

    The first user of a family is always an admin. Caretakers only
    record activities and view their payslip.
    """
    ADMIN = "admin"
    CARETAKER = "caretaker"


class ActivityType(str, Enum):
    """Kinds of worklog entries a caretaker records."""
    VACATION_DAY = "vacationDay"
    SICK_DAY = "sickDay"
    SHABBAT = "shabbat"
    POCKET_MONEY = "pocketMoney"
    HOSPITAL_VISIT = "hospitalVisit"
    HOLIDAY_VACATION = "holidayVacation"


# Activities that turn into a monthly one-time payment
CHARGEABLE_ACTIVITY_TYPES = (ActivityType.SHABBAT, ActivityType.POCKET_MONEY)


class Screen(str, Enum):
    """Application screens gated by role."""
    DASHBOARD = "dashboard"
    WORKLOG = "worklog"
    PAYSLIPS = "payslips"
    SHEVAH_COVERAGE = "shevah_coverage"
    ELDER_FINANCIALS = "elder_financials"
    ELDER_EXPENSES = "elder_expenses"
    SETTINGS = "settings"
    USER_MANAGEMENT = "user_management"
    ACTION_LOG = "action_log"


class ExpenseEntryType(str, Enum):
    """An elder expense is either a monetary amount or a number of hours."""
    AMOUNT = "amount"
    HOURS = "hours"


# =============================================================================
# ACCOUNTS AND SESSIONS
# =============================================================================

class FamilyAccount(CamelModel):
    """
    The tenancy unit.

    Created at registration, edited from the settings screen,
    never deleted from inside the application.
    """

    family_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    contract_start_date: date
    monthly_base_amount: float = Field(
        ...,
        gt=0,
        description="Caretaker monthly base pay before Shevah offset"
    )


class User(BaseModel):
    """
    A login belonging to exactly one family.

    Stored in the backend users table with snake_case columns; the
    password column holds a bcrypt hash, never the password itself.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: RecordId = Field(default_factory=new_record_id)
    username: str = Field(..., min_length=1, max_length=100)
    password_hash: str = Field(..., alias="password")
    name: Optional[str] = None
    family_id: str = Field(..., min_length=1)
    role: UserRole = UserRole.ADMIN
    created_at: datetime = Field(default_factory=utc_now)

    def to_row(self) -> dict:
        """Dump as a users-table row."""
        return self.model_dump(mode="json", by_alias=True)

    def public_dict(self) -> dict:
        """User data safe to hand to a screen (no password hash)."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class FamilySession(CamelModel):
    """
    The logged-in context.

    Passed explicitly to every family-scoped component instead of being
    re-read from ambient state on each call.
    """

    username: str
    family_id: str = Field(..., min_length=1)
    role: UserRole = UserRole.ADMIN
    logged_in: bool = True
    timestamp: datetime = Field(default_factory=utc_now)
    token: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_expired(self, now: datetime, max_age: timedelta) -> bool:
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - timestamp >= max_age

    def is_valid(self, now: datetime, max_age: timedelta) -> bool:
        return self.logged_in is True and not self.is_expired(now, max_age)


# =============================================================================
# WORKLOG AND LEDGER RECORDS
# =============================================================================

class Activity(CamelModel):
    """A single worklog entry, stored in the bucket of its month."""

    id: RecordId = Field(default_factory=new_record_id)
    type: ActivityType
    date: date

    @property
    def month_key(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @property
    def payment_id(self) -> str:
        """Identity of the one-time payment this activity produces."""
        return f"{self.type.value}_{self.date.isoformat()}"


class ShevahCoverageRow(CamelModel):
    """Hours of third-party funded care that offset the base pay."""

    id: RecordId = Field(default_factory=new_record_id)
    hours: float = Field(default=12.5, ge=0)
    amount_per_hour: float = Field(default=44.0, ge=0)

    @property
    def total(self) -> float:
        return self.hours * self.amount_per_hour


class FinancialEntry(CamelModel):
    """A monthly income line of the elder (pension, allowance, ...)."""

    id: RecordId = Field(default_factory=new_record_id)
    name: str = Field(..., min_length=1, max_length=200)
    amount: float = 0.0


class ExpenseEntry(CamelModel):
    """A monthly expense line of the elder, either money or hours."""

    id: RecordId = Field(default_factory=new_record_id)
    name: str = Field(..., min_length=1, max_length=200)
    type: ExpenseEntryType = ExpenseEntryType.AMOUNT
    amount: Optional[float] = None
    hours: Optional[float] = None

    @model_validator(mode='after')
    def keep_only_matching_value(self) -> 'ExpenseEntry':
        """An amount entry carries no hours and vice versa."""
        if self.type == ExpenseEntryType.AMOUNT:
            self.amount = self.amount or 0.0
            self.hours = None
        else:
            self.hours = self.hours or 0.0
            self.amount = None
        return self


# =============================================================================
# SETTINGS RECORDS
# =============================================================================

class ActivityCharges(CamelModel):
    """Flat charge per activity occurrence."""

    vacation_day: float = 250.0
    sick_day: float = 0.0
    shabbat: float = 426.4
    pocket_money: float = 100.0
    hospital_visit: float = 0.0
    holiday_vacation_day: float = 426.4

    def charge_for(self, activity_type: ActivityType) -> float:
        field_by_type = {
            ActivityType.VACATION_DAY: "vacation_day",
            ActivityType.SICK_DAY: "sick_day",
            ActivityType.SHABBAT: "shabbat",
            ActivityType.POCKET_MONEY: "pocket_money",
            ActivityType.HOSPITAL_VISIT: "hospital_visit",
            ActivityType.HOLIDAY_VACATION: "holiday_vacation_day",
        }
        return getattr(self, field_by_type[ActivityType(activity_type)])


class YearlyPaymentSet(CamelModel):
    """
    One-time payments owed once per contract year.

    Havraa (recreation allowance) lives here, not in the monthly total.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    medical_insurance: float = 0.0
    taagid_payment: float = 2000.0
    taagid_handling: float = 840.0
    havraa_amount_per_day: float = 174.0
    havraa_days: float = 5.0

    @property
    def havraa_total(self) -> float:
        return self.havraa_amount_per_day * self.havraa_days


class CalculationParams(CamelModel):
    """Frequencies used to project a full contract year of expenses."""

    vacation_days_per_year: float = 12
    holiday_vacation_days_per_year: float = 12
    pocket_money_weeks_per_year: float = 52
    shabbat_per_month: float = 3
    shabbat_months_per_year: float = 12


# =============================================================================
# COMPUTED VIEWS (never persisted)
# =============================================================================

class ContractYear(BaseModel):
    """A 12-calendar-month window anchored on the contract start date."""

    year: int = Field(..., ge=0)
    key: str
    start_date: date
    end_date: date
    label: str


class VacationSummary(BaseModel):
    """Allowance usage within the current anniversary year."""

    total: int = 12
    used: int = 0
    remaining: int = 12


class StorageTestResult(BaseModel):
    """Outcome of the cache availability self-test."""

    available: bool
    error: Optional[str] = None
    family_id: Optional[str] = None
