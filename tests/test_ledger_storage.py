"""Tests for the SQL ledger store (expenses, budgets, aggregates)."""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from spend_ledger.validation import ValidationError


JUNE_15 = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


class TestAddExpense:
    """Tests for recording expenses."""

    async def test_add_and_read_back(self, ledger, tenant_a):
        """Test the ₹500 groceries round trip through a month read."""
        expense = await ledger.add_expense(
            tenant_a, 500, "groceries", description="Weekly shop", date=JUNE_15
        )

        assert expense.tenant_id == tenant_a
        assert expense.amount == Decimal("500.00")
        assert expense.category == "groceries"
        assert expense.description == "Weekly shop"
        assert expense.date == JUNE_15

        [stored] = await ledger.get_expenses_by_month(tenant_a, 2024, 6)
        assert stored.id == expense.id
        assert stored.amount == Decimal("500.00")
        assert stored.date == JUNE_15
        assert stored.created_at == expense.created_at

    async def test_accepts_string_tenant(self, ledger, tenant_a):
        """Test that the canonical string form of the tenant works."""
        expense = await ledger.add_expense(str(tenant_a), "12.50", "food", date=JUNE_15)
        assert expense.tenant_id == tenant_a
        assert expense.amount == Decimal("12.50")

    async def test_date_defaults_to_now(self, ledger, tenant_a):
        """Test that a missing date means now (UTC)."""
        before = datetime.now(timezone.utc)
        expense = await ledger.add_expense(tenant_a, 100, "transport")
        assert expense.date >= before.replace(microsecond=0)
        assert expense.date.tzinfo is not None

    async def test_category_is_stripped(self, ledger, tenant_a):
        """Test that category whitespace is normalized."""
        expense = await ledger.add_expense(tenant_a, 100, "  food  ", date=JUNE_15)
        assert expense.category == "food"

    @pytest.mark.parametrize("amount", [0, -10, "0.001"])
    async def test_non_positive_amount_writes_nothing(self, ledger, tenant_a, amount):
        """Test that amounts <= 0 raise and leave the ledger empty."""
        with pytest.raises(ValidationError, match="Amount must be greater than 0"):
            await ledger.add_expense(tenant_a, amount, "food", date=JUNE_15)

        assert await ledger.get_expenses_by_month(tenant_a, 2024, 6) == []

    async def test_empty_category_rejected(self, ledger, tenant_a):
        """Test that a blank category is a validation error."""
        with pytest.raises(ValidationError, match="Category is required"):
            await ledger.add_expense(tenant_a, 100, "   ", date=JUNE_15)

    async def test_malformed_tenant_rejected(self, ledger):
        """Test that a malformed tenant id never reaches the database."""
        with pytest.raises(ValidationError, match="Invalid tenant ID"):
            await ledger.add_expense("user-1", 100, "food", date=JUNE_15)


class TestMonthReads:
    """Tests for get_expenses_by_month."""

    async def test_ordered_newest_first(self, ledger, tenant_a):
        """Test ordering by date descending."""
        early = await ledger.add_expense(tenant_a, 10, "food", date=datetime(2024, 6, 2, tzinfo=timezone.utc))
        late = await ledger.add_expense(tenant_a, 20, "food", date=datetime(2024, 6, 28, tzinfo=timezone.utc))
        middle = await ledger.add_expense(tenant_a, 30, "food", date=JUNE_15)

        expenses = await ledger.get_expenses_by_month(tenant_a, 2024, 6)
        assert [e.id for e in expenses] == [late.id, middle.id, early.id]

    async def test_month_bounds_inclusive(self, ledger, tenant_a):
        """Test that the first and last instant belong to the month."""
        first = await ledger.add_expense(tenant_a, 1, "food", date=datetime(2024, 6, 1, tzinfo=timezone.utc))
        last = await ledger.add_expense(
            tenant_a, 2, "food",
            date=datetime(2024, 6, 30, 23, 59, 59, 999999, tzinfo=timezone.utc),
        )
        await ledger.add_expense(tenant_a, 3, "food", date=datetime(2024, 7, 1, tzinfo=timezone.utc))
        await ledger.add_expense(
            tenant_a, 4, "food",
            date=datetime(2024, 5, 31, 23, 59, 59, tzinfo=timezone.utc),
        )

        expenses = await ledger.get_expenses_by_month(tenant_a, 2024, 6)
        assert {e.id for e in expenses} == {first.id, last.id}

    async def test_empty_month(self, ledger, tenant_a):
        """Test that a month without expenses is an empty list."""
        assert await ledger.get_expenses_by_month(tenant_a, 2024, 1) == []

    async def test_invalid_month_rejected(self, ledger, tenant_a):
        """Test month validation."""
        with pytest.raises(ValidationError, match="Invalid month"):
            await ledger.get_expenses_by_month(tenant_a, 2024, 13)


class TestTenantIsolation:
    """Tests that one tenant never sees another's records."""

    async def test_reads_are_isolated(self, ledger, tenant_a, tenant_b):
        """Test expenses, aggregates and budgets across two tenants."""
        await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)
        await ledger.set_budget(tenant_a, "groceries", 5000, 2024, 6)

        assert await ledger.get_expenses_by_month(tenant_b, 2024, 6) == []
        assert await ledger.spending_by_category(tenant_b, 2024, 6) == []
        assert await ledger.total_spending(tenant_b, 2024, 6) == Decimal("0.00")
        assert await ledger.list_budgets(tenant_b, 2024, 6) == []

    async def test_foreign_update_and_delete_are_not_found(self, ledger, tenant_a, tenant_b):
        """Test that another tenant's ids behave as missing."""
        expense = await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)
        budget = await ledger.set_budget(tenant_a, "groceries", 5000, 2024, 6)

        assert await ledger.update_expense(tenant_b, expense.id, amount=1) is None
        assert await ledger.delete_expense(tenant_b, expense.id) is None
        assert await ledger.delete_budget(tenant_b, budget.id) is None

        [stored] = await ledger.get_expenses_by_month(tenant_a, 2024, 6)
        assert stored.amount == Decimal("500.00")
        assert len(await ledger.list_budgets(tenant_a, 2024, 6)) == 1


class TestUpdateExpense:
    """Tests for partial expense updates."""

    async def test_only_supplied_fields_change(self, ledger, tenant_a):
        """Test that unspecified fields keep their values."""
        original = await ledger.add_expense(
            tenant_a, 500, "groceries", description="Weekly shop", date=JUNE_15
        )

        updated = await ledger.update_expense(tenant_a, original.id, amount="650.5")

        assert updated.amount == Decimal("650.50")
        assert updated.category == "groceries"
        assert updated.description == "Weekly shop"
        assert updated.date == JUNE_15
        assert updated.created_at == original.created_at
        assert updated.updated_at >= original.updated_at

    async def test_none_means_not_supplied(self, ledger, tenant_a):
        """Test that None-valued fields are ignored."""
        original = await ledger.add_expense(tenant_a, 500, "groceries", description="x", date=JUNE_15)

        updated = await ledger.update_expense(
            tenant_a, original.id, category="food", description=None
        )

        assert updated.category == "food"
        assert updated.description == "x"

    async def test_supplied_fields_are_validated(self, ledger, tenant_a):
        """Test that update validates like add."""
        original = await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)

        with pytest.raises(ValidationError):
            await ledger.update_expense(tenant_a, original.id, amount=0)
        with pytest.raises(ValidationError, match="Unknown expense field"):
            await ledger.update_expense(tenant_a, original.id, tenant_id=uuid4())

    async def test_moving_date_changes_month(self, ledger, tenant_a):
        """Test that a new date moves the expense between months."""
        original = await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)

        await ledger.update_expense(tenant_a, original.id, date=date(2024, 7, 3))

        assert await ledger.get_expenses_by_month(tenant_a, 2024, 6) == []
        [moved] = await ledger.get_expenses_by_month(tenant_a, 2024, 7)
        assert moved.date == datetime(2024, 7, 3, tzinfo=timezone.utc)

    async def test_missing_expense(self, ledger, tenant_a):
        """Test that an unknown id returns None."""
        assert await ledger.update_expense(tenant_a, uuid4(), amount=1) is None

    async def test_malformed_expense_id(self, ledger, tenant_a):
        """Test that a malformed id is a validation error."""
        with pytest.raises(ValidationError, match="Invalid expense ID"):
            await ledger.update_expense(tenant_a, "42", amount=1)


class TestDeleteExpense:
    """Tests for deleting expenses."""

    async def test_delete_returns_row(self, ledger, tenant_a):
        """Test that the deleted expense is returned."""
        expense = await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)

        deleted = await ledger.delete_expense(tenant_a, expense.id)

        assert deleted.id == expense.id
        assert deleted.amount == Decimal("500.00")
        assert await ledger.get_expenses_by_month(tenant_a, 2024, 6) == []

    async def test_delete_missing_leaves_ledger_unchanged(self, ledger, tenant_a):
        """Test that deleting an unknown id is not-found and harmless."""
        expense = await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)

        assert await ledger.delete_expense(tenant_a, uuid4()) is None

        [remaining] = await ledger.get_expenses_by_month(tenant_a, 2024, 6)
        assert remaining.id == expense.id


class TestBudgets:
    """Tests for budget upsert, listing and deletion."""

    async def test_set_budget(self, ledger, tenant_a):
        """Test creating a budget for a month."""
        budget = await ledger.set_budget(tenant_a, "groceries", 5000, 2024, 6)

        assert budget.tenant_id == tenant_a
        assert budget.limit == Decimal("5000.00")
        assert budget.month == date(2024, 6, 1)

    async def test_second_set_replaces_limit(self, ledger, tenant_a):
        """Test that setting twice leaves one row with the second limit."""
        first = await ledger.set_budget(tenant_a, "groceries", 5000, 2024, 6)
        second = await ledger.set_budget(tenant_a, "groceries", 6000, 2024, 6)

        assert second.id == first.id
        assert second.created_at == first.created_at
        [budget] = await ledger.list_budgets(tenant_a, 2024, 6)
        assert budget.limit == Decimal("6000.00")

    async def test_concurrent_sets_leave_one_row(self, ledger, tenant_a):
        """Test that racing upserts for one key never duplicate the row."""
        results = await asyncio.gather(
            ledger.set_budget(tenant_a, "food", 1000, 2024, 6),
            ledger.set_budget(tenant_a, "food", 2000, 2024, 6),
        )

        assert results[0].id == results[1].id
        [budget] = await ledger.list_budgets(tenant_a, 2024, 6)
        assert budget.limit in {Decimal("1000.00"), Decimal("2000.00")}

    async def test_months_are_separate_keys(self, ledger, tenant_a):
        """Test that each month holds its own budget row."""
        await ledger.set_budget(tenant_a, "food", 1000, 2024, 6)
        await ledger.set_budget(tenant_a, "food", 1200, 2024, 7)

        [june] = await ledger.list_budgets(tenant_a, 2024, 6)
        [july] = await ledger.list_budgets(tenant_a, 2024, 7)
        assert june.limit == Decimal("1000.00")
        assert july.limit == Decimal("1200.00")

    async def test_list_ordered_by_category(self, ledger, tenant_a):
        """Test that listings are sorted by category."""
        for category in ("transport", "food", "groceries"):
            await ledger.set_budget(tenant_a, category, 100, 2024, 6)

        budgets = await ledger.list_budgets(tenant_a, 2024, 6)
        assert [b.category for b in budgets] == ["food", "groceries", "transport"]

    async def test_non_positive_limit_rejected(self, ledger, tenant_a):
        """Test that limits must be positive."""
        with pytest.raises(ValidationError, match="Budget limit must be greater than 0"):
            await ledger.set_budget(tenant_a, "food", 0, 2024, 6)

    async def test_delete_budget(self, ledger, tenant_a):
        """Test deleting a budget and deleting it again."""
        budget = await ledger.set_budget(tenant_a, "food", 1000, 2024, 6)

        deleted = await ledger.delete_budget(tenant_a, budget.id)

        assert deleted.category == "food"
        assert await ledger.list_budgets(tenant_a, 2024, 6) == []
        assert await ledger.delete_budget(tenant_a, budget.id) is None


class TestAggregates:
    """Tests for the SQL aggregate primitives."""

    async def test_spending_by_category(self, ledger, tenant_a):
        """Test grouped totals and counts."""
        await ledger.add_expense(tenant_a, 500, "groceries", date=JUNE_15)
        await ledger.add_expense(tenant_a, "250.25", "groceries", date=JUNE_15)
        await ledger.add_expense(tenant_a, 300, "entertainment", date=JUNE_15)
        await ledger.add_expense(tenant_a, 999, "groceries", date=datetime(2024, 5, 1, tzinfo=timezone.utc))

        spending = await ledger.spending_by_category(tenant_a, 2024, 6)

        assert [(s.category, s.total, s.count) for s in spending] == [
            ("entertainment", Decimal("300.00"), 1),
            ("groceries", Decimal("750.25"), 2),
        ]

    async def test_total_matches_category_sum(self, ledger, tenant_a):
        """Test that the month total equals the sum of category totals."""
        for amount, category in [("10.10", "food"), ("20.20", "food"), ("30.30", "transport")]:
            await ledger.add_expense(tenant_a, amount, category, date=JUNE_15)

        total = await ledger.total_spending(tenant_a, 2024, 6)
        spending = await ledger.spending_by_category(tenant_a, 2024, 6)

        assert total == Decimal("60.60")
        assert total == sum((s.total for s in spending), Decimal("0"))

    async def test_empty_month_totals(self, ledger, tenant_a):
        """Test zero values for a month without expenses."""
        assert await ledger.spending_by_category(tenant_a, 2024, 6) == []
        assert await ledger.total_spending(tenant_a, 2024, 6) == Decimal("0.00")
