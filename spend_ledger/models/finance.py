"""
Core Data Models for Spend Ledger

These models define the shapes that leave the storage layer and flow
through the accounting engine and the action facade. They are designed to:
1. Keep money as Decimal everywhere (never float)
2. Carry timezone-aware UTC timestamps
3. Be serializable for tool results (model_dump(mode="json"))

DESIGN DECISION: The store is category-agnostic. ExpenseCategory is the
enumerated set offered to the AI tools; persisted records keep free text.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Categories the chat tools offer.

    The ledger itself accepts any non-empty label.
    """
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    HEALTHCARE = "healthcare"
    FOOD = "food"
    SHOPPING = "shopping"
    OTHER = "other"


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Expense(BaseModel):
    """One recorded transaction."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount in the tenant's currency, 2 decimal places"
    )
    category: str
    description: Optional[str] = None
    date: datetime = Field(
        ...,
        description="When the spend happened (not when it was recorded)"
    )
    created_at: datetime
    updated_at: datetime

    @field_validator('date', 'created_at', 'updated_at')
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Budget(BaseModel):
    """A monthly spending limit for one category."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    category: str
    limit: Decimal = Field(..., gt=0)
    month: date = Field(
        ...,
        description="First day of the calendar month"
    )
    created_at: datetime
    updated_at: datetime

    @field_validator('created_at', 'updated_at')
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Profile(BaseModel):
    """The one profile row a tenant owns."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    note: Optional[str] = None
    updated_at: datetime

    @field_validator('updated_at')
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return _as_utc(v)


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class CategorySpending(BaseModel):
    """Spend in one category over one month."""

    category: str
    total: Decimal
    count: int = Field(ge=1)


class BudgetStatus(BaseModel):
    """
    Budget-vs-actual for one budget row.

    CRITICAL: `percentage` is clamped to 100 while `exceeded` compares the
    raw values. Alert formatting relies on the two disagreeing once spend
    runs past the limit.
    """

    budget_id: UUID
    category: str
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: Decimal = Field(ge=0, le=100)
    exceeded: bool


class BudgetAlert(BaseModel):
    """A budget at or above the alert threshold, ready to show."""

    category: str
    percentage: int
    spent: Decimal
    budget: Decimal
    exceeded: bool
    message: str


class DashboardData(BaseModel):
    """
    Everything the finance dashboard shows for one month.

    Serialized with by_alias=True the top-level keys are camelCase
    (currentMonth, totalSpent, ...), the shape the dashboard client reads.
    """

    current_month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        serialization_alias="currentMonth",
    )
    expenses: list[Expense] = Field(default_factory=list)
    category_breakdown: list[CategorySpending] = Field(
        default_factory=list, serialization_alias="categoryBreakdown"
    )
    total_spent: Decimal = Field(..., serialization_alias="totalSpent")
    budget_status: list[BudgetStatus] = Field(
        default_factory=list, serialization_alias="budgetStatus"
    )
