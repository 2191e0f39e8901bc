"""Names of the family-scoped storage keys. Stored data depends on them."""

CONTRACT_START_DATE = "contractStartDate"
MONTHLY_BASE_AMOUNT = "monthlyBaseAmount"
YEARLY_BASE_AMOUNTS = "yearlyBaseAmounts"
ACTIVITY_CHARGES = "activityCharges"
YEARLY_PAYMENTS = "yearlyPayments"
CALCULATION_PARAMS = "calculationParams"

WORKLOG = "worklog"
PAYSLIPS = "payslips"
SHEVAH_COVERAGE = "shevahCoverage"
ELDER_FINANCIALS = "elderFinancials"
ELDER_EXPENSES = "elderExpenses"

ACTION_LOG = "actionLog"
SCHEMA_VERSION = "schemaVersion"
