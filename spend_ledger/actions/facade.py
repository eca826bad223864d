"""
Action Facade

The boundary between the chat runtime and the engine. Every method:
1. Takes the tenant id the auth layer already verified
2. Calls the stores / accounting engine
3. Wraps the outcome in an ActionResult envelope

DESIGN DECISION: The facade owns ALL presentation text (currency symbol,
success messages, alert wording). The layers below return data only.

CRITICAL: Expected failures (bad input, storage errors, not-found) become
{success: false, error} envelopes. Anything unexpected is logged with its
traceback and reported with the operation's generic failure text so no
internals leak into the chat.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from spend_ledger.accounting import AccountingEngine, budget_usage
from spend_ledger.config import AppSettings, get_settings
from spend_ledger.logging_config import get_logger
from spend_ledger.models.finance import BudgetAlert, BudgetStatus
from spend_ledger.models.period import MonthPeriod
from spend_ledger.services.storage import (
    LedgerStorageInterface,
    ProfileStorageInterface,
    StorageError,
)
from spend_ledger.validation import ValidationError


logger = get_logger(__name__)

Clock = Callable[[], datetime]


class ActionResult(BaseModel):
    """Envelope returned by every facade method."""

    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ActionResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failed(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; money as decimal strings, times as ISO-8601."""
        payload = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in payload.items() if value is not None}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_amount(symbol: str, amount: Decimal) -> str:
    """₹500 for whole amounts, ₹499.50 otherwise."""
    if amount == amount.to_integral_value():
        return f"{symbol}{amount.to_integral_value()}"
    return f"{symbol}{amount:.2f}"


def _round_percent(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class FinanceActions:
    """
    Operations the chat tools and dashboard call.

    Example:
        actions = FinanceActions(ledger, accounting, profiles)
        result = await actions.record_expense(tenant_id, 500, "groceries")
        result.message  # "Recorded ₹500 spent on groceries"
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        accounting: AccountingEngine,
        profiles: ProfileStorageInterface,
        settings: Optional[AppSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self._ledger = ledger
        self._accounting = accounting
        self._profiles = profiles
        self._settings = settings or get_settings().app
        self._clock = clock or _utcnow

    def _money(self, amount: Decimal) -> str:
        return _format_amount(self._settings.currency_symbol, amount)

    def _current_period(self) -> MonthPeriod:
        return MonthPeriod.current(self._clock())

    async def _run(
        self,
        action: str,
        failure: str,
        call: Callable[[], Awaitable[ActionResult]],
    ) -> ActionResult:
        try:
            return await call()
        except (ValidationError, StorageError) as e:
            logger.warning("action_rejected", action=action, error=str(e))
            return ActionResult.failed(str(e))
        except Exception:
            logger.exception("action_failed", action=action)
            return ActionResult.failed(failure)

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def get_user_profile_by_id(
        self,
        tenant_id: Any,
        email: str,
        name: str,
    ) -> ActionResult:
        """Fetch the profile, creating it on first use."""
        async def call() -> ActionResult:
            profile = await self._profiles.get_or_create_profile(tenant_id, email, name)
            return ActionResult.ok(data=profile)

        return await self._run("get_user_profile", "Failed to get or create profile", call)

    async def update_user_note_by_id(
        self,
        tenant_id: Any,
        note: Optional[str],
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ActionResult:
        """
        Save the profile note.

        A missing profile is created first with whatever identity the
        caller knows, falling back to configured placeholders.
        """
        async def call() -> ActionResult:
            profile = await self._profiles.get_profile(tenant_id)
            if profile is None:
                created = await self._profiles.create_profile(
                    tenant_id,
                    name or self._settings.fallback_profile_name,
                    email or self._settings.fallback_profile_email,
                )
                if created is None and await self._profiles.get_profile(tenant_id) is None:
                    return ActionResult.failed("Failed to create profile")

            updated = await self._profiles.update_note(tenant_id, note)
            if updated is None:
                return ActionResult.failed("Failed to update note")
            return ActionResult.ok(data=updated)

        return await self._run("update_user_note", "Failed to update note", call)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def record_expense(
        self,
        tenant_id: Any,
        amount: Any,
        category: str,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> ActionResult:
        async def call() -> ActionResult:
            expense = await self._ledger.add_expense(
                tenant_id,
                amount,
                category,
                description=description,
                date=date if date is not None else self._clock(),
            )
            return ActionResult.ok(
                data=expense,
                message=f"Recorded {self._money(expense.amount)} spent on {expense.category}",
            )

        return await self._run("record_expense", "Failed to record expense", call)

    async def update_expense_action(
        self,
        tenant_id: Any,
        expense_id: Any,
        /,
        **changes: Any,
    ) -> ActionResult:
        async def call() -> ActionResult:
            updated = await self._ledger.update_expense(tenant_id, expense_id, **changes)
            if updated is None:
                return ActionResult.failed(
                    "Expense not found or you don't have permission to update it"
                )
            return ActionResult.ok(data=updated, message="Expense updated successfully")

        return await self._run("update_expense", "Failed to update expense", call)

    async def delete_expense_action(
        self,
        tenant_id: Any,
        expense_id: Any,
    ) -> ActionResult:
        async def call() -> ActionResult:
            deleted = await self._ledger.delete_expense(tenant_id, expense_id)
            if deleted is None:
                return ActionResult.failed(
                    "Expense not found or you don't have permission to delete it"
                )
            symbol = self._settings.currency_symbol
            return ActionResult.ok(
                data=deleted,
                message=f"Deleted expense: {symbol}{deleted.amount:.2f} - {deleted.category}",
            )

        return await self._run("delete_expense", "Failed to delete expense", call)

    # =========================================================================
    # DASHBOARD & BUDGETS
    # =========================================================================

    async def get_dashboard_data(self, tenant_id: Any) -> ActionResult:
        """Everything the dashboard shows for the current month."""
        async def call() -> ActionResult:
            dashboard = await self._accounting.get_dashboard(
                tenant_id, self._current_period()
            )
            return ActionResult.ok(data=dashboard)

        return await self._run("get_dashboard", "Failed to fetch dashboard", call)

    async def set_budget_action(
        self,
        tenant_id: Any,
        category: str,
        limit: Any,
    ) -> ActionResult:
        """Create or replace the current month's budget for a category."""
        async def call() -> ActionResult:
            period = self._current_period()
            budget = await self._ledger.set_budget(
                tenant_id, category, limit, period.year, period.month
            )
            return ActionResult.ok(
                data=budget,
                message=f"Budget set: {self._money(budget.limit)} for {budget.category}",
            )

        return await self._run("set_budget", "Failed to set budget", call)

    async def delete_budget_action(
        self,
        tenant_id: Any,
        budget_id: Any,
    ) -> ActionResult:
        async def call() -> ActionResult:
            deleted = await self._ledger.delete_budget(tenant_id, budget_id)
            if deleted is None:
                return ActionResult.failed(
                    "Budget not found or you don't have permission to delete it"
                )
            return ActionResult.ok(
                data=deleted, message=f"Deleted budget for {deleted.category}"
            )

        return await self._run("delete_budget", "Failed to delete budget", call)

    async def get_budget_alerts(self, tenant_id: Any) -> ActionResult:
        """
        Budgets at or above the alert threshold this month.

        The threshold compares against the unrounded usage capped at 100,
        so 74.995% stays quiet at a 75% threshold and every exceeded
        budget alerts.
        """
        async def call() -> ActionResult:
            period = self._current_period()
            status = await self._accounting.get_budget_status(
                tenant_id, period.year, period.month
            )
            threshold = self._settings.alert_threshold_percent
            alerts = [
                self._build_alert(item)
                for item in status
                if budget_usage(item.spent, item.budget) >= threshold
            ]
            return ActionResult.ok(data=alerts)

        return await self._run("get_budget_alerts", "Failed to fetch alerts", call)

    def _build_alert(self, status: BudgetStatus) -> BudgetAlert:
        percentage = _round_percent(budget_usage(status.spent, status.budget))
        symbol = self._settings.currency_symbol

        if status.exceeded:
            message = (
                f"Over budget for {status.category}: "
                f"{symbol}{status.spent:.2f} / {symbol}{status.budget:.2f}"
            )
        else:
            message = f"You're {percentage}% of your {status.category} budget"

        return BudgetAlert(
            category=status.category,
            percentage=percentage,
            spent=status.spent,
            budget=status.budget,
            exceeded=status.exceeded,
            message=message,
        )
