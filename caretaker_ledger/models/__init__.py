"""
Data Models Package

This package contains all Pydantic models used in Caretaker Ledger.
All data flowing through the system must conform to these schemas.
"""

from caretaker_ledger.models.family import (
    CHARGEABLE_ACTIVITY_TYPES,
    Activity,
    ActivityCharges,
    ActivityType,
    CalculationParams,
    CamelModel,
    ContractYear,
    ExpenseEntry,
    ExpenseEntryType,
    FamilyAccount,
    FamilySession,
    FinancialEntry,
    RecordId,
    Screen,
    ShevahCoverageRow,
    StorageTestResult,
    User,
    UserRole,
    VacationSummary,
    YearlyPaymentSet,
    new_record_id,
)
from caretaker_ledger.models.payslip import (
    ExpectedYearlyExpenses,
    MonthlyOneTimePayment,
    OpenTask,
    PaymentStatus,
    PayslipBreakdown,
    PayslipRecord,
    PayslipView,
    YearlyOneTimePayment,
)
from caretaker_ledger.models.audit import (
    ActionLogEntry,
    ActionLogEntryBuilder,
    ActionType,
)
from caretaker_ledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Family models
    "CHARGEABLE_ACTIVITY_TYPES",
    "Activity",
    "ActivityCharges",
    "ActivityType",
    "CalculationParams",
    "CamelModel",
    "ContractYear",
    "ExpenseEntry",
    "ExpenseEntryType",
    "FamilyAccount",
    "FamilySession",
    "FinancialEntry",
    "RecordId",
    "Screen",
    "ShevahCoverageRow",
    "StorageTestResult",
    "User",
    "UserRole",
    "VacationSummary",
    "YearlyPaymentSet",
    "new_record_id",
    # Payslip models
    "ExpectedYearlyExpenses",
    "MonthlyOneTimePayment",
    "OpenTask",
    "PaymentStatus",
    "PayslipBreakdown",
    "PayslipRecord",
    "PayslipView",
    "YearlyOneTimePayment",
    # Action log models
    "ActionLogEntry",
    "ActionLogEntryBuilder",
    "ActionType",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
