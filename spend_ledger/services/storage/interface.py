"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the accounting engine and the facade unaware of SQL
2. Swap PostgreSQL for SQLite in tests
3. Keep business logic decoupled from storage implementation

CONVENTIONS shared by every implementation:
- The tenant id is always the first argument and is validated before
  any connection is used
- Update/delete of a missing OR foreign record returns None, never
  raises, so other tenants' ids cannot be discovered
- Database failures surface as StorageError
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from spend_ledger.models.finance import (
    Budget,
    CategorySpending,
    Expense,
    Profile,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for expense and budget storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def add_expense(
        self,
        tenant_id: Any,
        amount: Any,
        category: str,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Expense:
        """
        Record a new expense.

        Args:
            tenant_id: Owning tenant
            amount: Strictly positive amount, 2 decimal places
            category: Non-empty free-text label
            description: Optional note about the purchase
            date: When the spend happened; defaults to now

        Returns:
            The created expense with generated id and timestamps

        Raises:
            ValidationError: If input is rejected
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_expenses_by_month(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[Expense]:
        """
        List a month's expenses, most recent first.

        Returns:
            Possibly empty list
        """
        pass

    @abstractmethod
    async def update_expense(
        self,
        tenant_id: Any,
        expense_id: Any,
        /,
        **changes: Any,
    ) -> Optional[Expense]:
        """
        Replace only the supplied fields (amount, category, description,
        date) and bump updated_at.

        Returns:
            The updated expense, or None if not found for this tenant
        """
        pass

    @abstractmethod
    async def delete_expense(
        self,
        tenant_id: Any,
        expense_id: Any,
    ) -> Optional[Expense]:
        """
        Delete an expense.

        Returns:
            The deleted expense, or None if not found for this tenant
        """
        pass

    @abstractmethod
    async def set_budget(
        self,
        tenant_id: Any,
        category: str,
        limit: Any,
        year: int,
        month: int,
    ) -> Budget:
        """
        Create or replace the budget for (tenant, category, month).

        Must be atomic against concurrent calls for the same key.
        """
        pass

    @abstractmethod
    async def delete_budget(
        self,
        tenant_id: Any,
        budget_id: Any,
    ) -> Optional[Budget]:
        """
        Delete a budget.

        Returns:
            The deleted budget, or None if not found for this tenant
        """
        pass

    @abstractmethod
    async def list_budgets(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[Budget]:
        """All budget rows of the month, ordered by category."""
        pass

    @abstractmethod
    async def spending_by_category(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> list[CategorySpending]:
        """
        Group the month's expenses by category in a single query.

        Only categories with at least one expense are returned.
        """
        pass

    @abstractmethod
    async def total_spending(
        self,
        tenant_id: Any,
        year: int,
        month: int,
    ) -> Decimal:
        """Sum of the month's expenses; Decimal("0.00") when there are none."""
        pass


class ProfileStorageInterface(ABC):
    """
    Abstract interface for tenant profiles.

    Profiles are never deleted by the engine.
    """

    @abstractmethod
    async def get_profile(self, tenant_id: Any) -> Optional[Profile]:
        """Fetch the tenant's profile, or None."""
        pass

    @abstractmethod
    async def create_profile(
        self,
        tenant_id: Any,
        name: str,
        email: str,
    ) -> Optional[Profile]:
        """
        Insert the profile unless one already exists.

        Returns:
            The created profile, or None if the insert did nothing
        """
        pass

    @abstractmethod
    async def get_or_create_profile(
        self,
        tenant_id: Any,
        email: str,
        name: str,
    ) -> Profile:
        """
        Return the tenant's profile, creating it on first access.

        Tolerates a concurrent call inserting first.

        Raises:
            StorageError: If no profile exists afterwards
        """
        pass

    @abstractmethod
    async def update_note(
        self,
        tenant_id: Any,
        note: Optional[str],
    ) -> Optional[Profile]:
        """
        Set the profile note and bump updated_at.

        Returns:
            The updated profile, or None if the tenant has no profile
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
