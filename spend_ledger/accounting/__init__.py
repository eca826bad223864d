"""Accounting engine package."""

from spend_ledger.accounting.engine import (
    AccountingEngine,
    budget_usage,
    compute_budget_status,
)

__all__ = ["AccountingEngine", "budget_usage", "compute_budget_status"]
