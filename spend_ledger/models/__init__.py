"""
Data Models Package

This package contains all Pydantic models used in Spend Ledger.
All data leaving the storage layer must conform to these schemas.
"""

from spend_ledger.models.finance import (
    Budget,
    BudgetAlert,
    BudgetStatus,
    CategorySpending,
    DashboardData,
    Expense,
    ExpenseCategory,
    Profile,
)
from spend_ledger.models.period import MonthPeriod

__all__ = [
    "Budget",
    "BudgetAlert",
    "BudgetStatus",
    "CategorySpending",
    "DashboardData",
    "Expense",
    "ExpenseCategory",
    "MonthPeriod",
    "Profile",
]
