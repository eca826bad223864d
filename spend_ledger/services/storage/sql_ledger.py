"""
SQL Ledger Storage

Expenses and budgets in a relational database through SQLAlchemy's
asyncio extension. Works against PostgreSQL (asyncpg) in production and
SQLite (aiosqlite) for local development and tests.

GUARANTEES:
- Every statement filters on the tenant id validated by the guard
- Money is bound and returned as Decimal
- set_budget is a single INSERT ... ON CONFLICT DO UPDATE, so two
  concurrent calls for one (tenant, category, month) cannot both insert
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from spend_ledger.logging_config import get_logger
from spend_ledger.models.finance import Budget, CategorySpending, Expense
from spend_ledger.models.period import MonthPeriod
from spend_ledger.services.storage.interface import LedgerStorageInterface
from spend_ledger.services.storage.tables import BudgetTable, ExpenseTable
from spend_ledger.validation import (
    MONEY_QUANTUM,
    ValidationError,
    validate_money,
    validate_occurred_at,
    validate_optional_text,
    validate_required_text,
    validate_uuid,
)

if TYPE_CHECKING:
    from spend_ledger.tenancy.guard import TenantContextGuard


logger = get_logger(__name__)

EXPENSE_FIELDS = ("amount", "category", "description", "date")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_money(value: Any) -> Decimal:
    """SUM() of nothing is NULL; SQLite may also hand back floats."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM)


def upsert_insert(session: AsyncSession):
    """The dialect's INSERT construct that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upsert is not supported on {dialect}")


def _budget_from_mapping(row: Mapping[str, Any]) -> Budget:
    return Budget(
        id=row["id"],
        tenant_id=row["user_id"],
        category=row["category"],
        limit=_to_money(row["limit"]),
        month=row["month"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SQLLedgerStorage(LedgerStorageInterface):
    """
    Relational implementation of the ledger.

    Each method runs in its own tenant scope, i.e. its own transaction on
    its own pooled connection, so callers may run several concurrently.
    """

    def __init__(self, guard: "TenantContextGuard"):
        self._guard = guard

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def add_expense(
        self,
        tenant_id: Any,
        amount: Any,
        category: str,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Expense:
        """Insert one expense; id and timestamps are generated here."""
        tenant = validate_uuid(tenant_id, label="tenant ID")
        amount = validate_money(amount, "Amount")
        category = validate_required_text(category, "Category")
        description = validate_optional_text(description, "Description")
        occurred_at = validate_occurred_at(date)

        async with self._guard.scope(tenant, "add_expense") as scope:
            now = _utcnow()
            row = ExpenseTable(
                tenant_id=scope.tenant_id,
                amount=amount,
                category=category,
                description=description,
                date=occurred_at,
                created_at=now,
                updated_at=now,
            )
            scope.session.add(row)
            await scope.session.flush()
            expense = Expense.model_validate(row)

        logger.info(
            "expense_added",
            tenant_id=str(tenant),
            expense_id=str(expense.id),
            category=category,
        )
        return expense

    async def get_expenses_by_month(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[Expense]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        period = MonthPeriod.of(year, month)

        async with self._guard.scope(tenant, "get_expenses_by_month") as scope:
            stmt = (
                select(ExpenseTable)
                .where(
                    ExpenseTable.tenant_id == scope.tenant_id,
                    ExpenseTable.date >= period.start,
                    ExpenseTable.date <= period.end,
                )
                .order_by(ExpenseTable.date.desc(), ExpenseTable.created_at.desc())
            )
            rows = (await scope.session.scalars(stmt)).all()
            return [Expense.model_validate(row) for row in rows]

    async def update_expense(
        self,
        tenant_id: Any,
        expense_id: Any,
        /,
        **changes: Any,
    ) -> Optional[Expense]:
        """
        Partial update. Fields passed as None are treated as not supplied.
        """
        tenant = validate_uuid(tenant_id, label="tenant ID")
        expense_uuid = validate_uuid(expense_id, label="expense ID")

        unknown = sorted(set(changes) - set(EXPENSE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown expense field(s): {', '.join(unknown)}",
                field=unknown[0],
            )

        values: dict[str, Any] = {}
        if changes.get("amount") is not None:
            values["amount"] = validate_money(changes["amount"], "Amount")
        if changes.get("category") is not None:
            values["category"] = validate_required_text(changes["category"], "Category")
        if changes.get("description") is not None:
            values["description"] = validate_optional_text(changes["description"], "Description")
        if changes.get("date") is not None:
            values["date"] = validate_occurred_at(changes["date"])
        values["updated_at"] = _utcnow()

        async with self._guard.scope(tenant, "update_expense") as scope:
            stmt = (
                update(ExpenseTable)
                .where(
                    ExpenseTable.id == expense_uuid,
                    ExpenseTable.tenant_id == scope.tenant_id,
                )
                .values(**values)
                .returning(ExpenseTable)
            )
            row = (await scope.session.scalars(stmt)).one_or_none()
            updated = Expense.model_validate(row) if row is not None else None

        logger.info(
            "expense_updated" if updated else "expense_update_missed",
            tenant_id=str(tenant),
            expense_id=str(expense_uuid),
            fields=sorted(k for k in values if k != "updated_at"),
        )
        return updated

    async def delete_expense(
        self,
        tenant_id: Any,
        expense_id: Any,
    ) -> Optional[Expense]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        expense_uuid = validate_uuid(expense_id, label="expense ID")

        async with self._guard.scope(tenant, "delete_expense") as scope:
            stmt = (
                delete(ExpenseTable)
                .where(
                    ExpenseTable.id == expense_uuid,
                    ExpenseTable.tenant_id == scope.tenant_id,
                )
                .returning(ExpenseTable)
            )
            row = (await scope.session.scalars(stmt)).one_or_none()
            deleted = Expense.model_validate(row) if row is not None else None

        logger.info(
            "expense_deleted" if deleted else "expense_delete_missed",
            tenant_id=str(tenant),
            expense_id=str(expense_uuid),
        )
        return deleted

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def set_budget(
        self,
        tenant_id: Any,
        category: str,
        limit: Any,
        year: int,
        month: int,
    ) -> Budget:
        """Upsert keyed by (tenant, category, first day of month)."""
        tenant = validate_uuid(tenant_id, label="tenant ID")
        category = validate_required_text(category, "Category")
        limit = validate_money(limit, "Budget limit")
        period = MonthPeriod.of(year, month)

        async with self._guard.scope(tenant, "set_budget") as scope:
            table = BudgetTable.__table__
            now = _utcnow()
            insert = upsert_insert(scope.session)
            stmt = insert(table).values(
                user_id=scope.tenant_id,
                category=category,
                limit=limit,
                month=period.first_day,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "category", "month"],
                set_={
                    "limit": stmt.excluded["limit"],
                    "updated_at": stmt.excluded["updated_at"],
                },
            ).returning(*table.c)
            result = await scope.session.execute(stmt)
            budget = _budget_from_mapping(result.mappings().one())

        logger.info(
            "budget_set",
            tenant_id=str(tenant),
            budget_id=str(budget.id),
            category=category,
            month=period.label,
        )
        return budget

    async def delete_budget(
        self,
        tenant_id: Any,
        budget_id: Any,
    ) -> Optional[Budget]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        budget_uuid = validate_uuid(budget_id, label="budget ID")

        async with self._guard.scope(tenant, "delete_budget") as scope:
            stmt = (
                delete(BudgetTable)
                .where(
                    BudgetTable.id == budget_uuid,
                    BudgetTable.tenant_id == scope.tenant_id,
                )
                .returning(BudgetTable)
            )
            row = (await scope.session.scalars(stmt)).one_or_none()
            deleted = Budget.model_validate(row) if row is not None else None

        logger.info(
            "budget_deleted" if deleted else "budget_delete_missed",
            tenant_id=str(tenant),
            budget_id=str(budget_uuid),
        )
        return deleted

    async def list_budgets(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[Budget]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        period = MonthPeriod.of(year, month)

        async with self._guard.scope(tenant, "list_budgets") as scope:
            stmt = (
                select(BudgetTable)
                .where(
                    BudgetTable.tenant_id == scope.tenant_id,
                    BudgetTable.month == period.first_day,
                )
                .order_by(BudgetTable.category)
            )
            rows = (await scope.session.scalars(stmt)).all()
            return [Budget.model_validate(row) for row in rows]

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def spending_by_category(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[CategorySpending]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        period = MonthPeriod.of(year, month)

        async with self._guard.scope(tenant, "spending_by_category") as scope:
            stmt = (
                select(
                    ExpenseTable.category,
                    func.sum(ExpenseTable.amount).label("total"),
                    func.count(ExpenseTable.id).label("expense_count"),
                )
                .where(
                    ExpenseTable.tenant_id == scope.tenant_id,
                    ExpenseTable.date >= period.start,
                    ExpenseTable.date <= period.end,
                )
                .group_by(ExpenseTable.category)
                .order_by(ExpenseTable.category)
            )
            rows = (await scope.session.execute(stmt)).all()

        return [
            CategorySpending(
                category=row.category,
                total=_to_money(row.total),
                count=row.expense_count,
            )
            for row in rows
        ]

    async def total_spending(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> Decimal:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        period = MonthPeriod.of(year, month)

        async with self._guard.scope(tenant, "total_spending") as scope:
            stmt = select(func.sum(ExpenseTable.amount)).where(
                ExpenseTable.tenant_id == scope.tenant_id,
                ExpenseTable.date >= period.start,
                ExpenseTable.date <= period.end,
            )
            total = await scope.session.scalar(stmt)

        return _to_money(total)
