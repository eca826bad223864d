"""
Accounting Engine

DESIGN DECISION: Derived views are computed from storage reads, never
stored. The engine owns the budget-vs-actual arithmetic; the storage layer
owns the SQL that feeds it.

GUARANTEES:
- All arithmetic is Decimal; sums come straight from SQL SUM()
- Budget status costs two queries however many categories exist
- percentage is clamped to [0, 100], exceeded compares raw values
"""

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from spend_ledger.logging_config import get_logger
from spend_ledger.models.finance import (
    Budget,
    BudgetStatus,
    CategorySpending,
    DashboardData,
)
from spend_ledger.models.period import MonthPeriod
from spend_ledger.services.storage import LedgerStorageInterface
from spend_ledger.tenancy import validate_tenant_id


logger = get_logger(__name__)

HUNDRED = Decimal("100")
PERCENT_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")


def budget_usage(spent: Decimal, limit: Decimal) -> Decimal:
    """Unrounded share of the limit spent, in percent, capped at 100."""
    return min(spent / limit * HUNDRED, HUNDRED)


def compute_budget_status(
    budgets: Iterable[Budget],
    spending: Iterable[CategorySpending],
) -> list[BudgetStatus]:
    """
    Merge budget rows with per-category spend.

    Budgets without spend report zero; spend without a budget is ignored.
    """
    spent_by_category = {item.category: item.total for item in spending}

    status = []
    for budget in budgets:
        spent = spent_by_category.get(budget.category, ZERO)
        status.append(BudgetStatus(
            budget_id=budget.id,
            category=budget.category,
            budget=budget.limit,
            spent=spent,
            remaining=budget.limit - spent,
            percentage=budget_usage(spent, budget.limit).quantize(
                PERCENT_QUANTUM, rounding=ROUND_HALF_UP
            ),
            exceeded=spent > budget.limit,
        ))
    return status


class AccountingEngine:
    """
    Computes spending views for one tenant and month.

    Every method accepts the raw tenant id; the storage layer validates it
    before touching the database.
    """

    def __init__(self, ledger: LedgerStorageInterface):
        self._ledger = ledger

    async def get_category_spending(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[CategorySpending]:
        """Total and count per category with at least one expense."""
        return await self._ledger.spending_by_category(tenant_id, year, month)

    async def get_total_spending(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> Decimal:
        """Month total; zero when nothing was spent."""
        return await self._ledger.total_spending(tenant_id, year, month)

    async def get_budget_status(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[BudgetStatus]:
        """Budget-vs-actual for every budget row of the month."""
        budgets = await self._ledger.list_budgets(tenant_id, year, month)
        if not budgets:
            return []

        spending = await self._ledger.spending_by_category(tenant_id, year, month)
        return compute_budget_status(budgets, spending)

    async def get_dashboard(
        self,
        tenant_id: Any,
        period: MonthPeriod,
    ) -> DashboardData:
        """
        The four dashboard reads, run concurrently.

        They are independent read-only queries on separate connections,
        so they may observe slightly different snapshots if a write lands
        in between.
        """
        tenant = validate_tenant_id(tenant_id)

        expenses, breakdown, total, budget_status = await asyncio.gather(
            self._ledger.get_expenses_by_month(tenant, period.year, period.month),
            self.get_category_spending(tenant, period.year, period.month),
            self.get_total_spending(tenant, period.year, period.month),
            self.get_budget_status(tenant, period.year, period.month),
        )

        logger.debug(
            "dashboard_computed",
            tenant_id=str(tenant),
            month=period.label,
            expense_count=len(expenses),
            budget_count=len(budget_status),
        )

        return DashboardData(
            current_month=period.label,
            expenses=expenses,
            category_breakdown=breakdown,
            total_spent=total,
            budget_status=budget_status,
        )
