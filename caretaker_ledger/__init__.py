"""
Caretaker Ledger - Source Package

Bookkeeping for a family that employs a live-in caretaker: worklog,
payslips, Shevah coverage, elder financials/expenses, and an action log,
persisted to a REST backend with a local cache in front of it.

DESIGN PRINCIPLES:
1. All data is partitioned by family
2. The local cache answers immediately, the backend is mirrored best-effort
3. Caretakers record activities, admins own the money
4. Every worklog change is logged
"""

__version__ = "1.0.0"
__author__ = "Caretaker Ledger Team"
