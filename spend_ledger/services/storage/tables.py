"""SQLAlchemy 2.0 table definitions for the ledger.

Every tenant-owned table carries a ``user_id`` column that holds the tenant
id; row security policies created by ``bootstrap`` compare it with the
transaction-local tenant setting.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


# NUMERIC(10, 2); asdecimal keeps values as Decimal on the way out
Money = Numeric(10, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Shared declarative base for all ledger tables."""


class ProfileTable(Base):
    """One profile per tenant; the primary key is the tenant id."""

    __tablename__ = "user_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_user_profiles_email", "email"),
    )


class ExpenseTable(Base):
    """Recorded transactions."""

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column("user_id", Uuid, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_positive_amount"),
        Index("idx_expenses_user_date", "user_id", "date"),
    )


class BudgetTable(Base):
    """Monthly limits, one row per (tenant, category, month)."""

    __tablename__ = "budgets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column("user_id", Uuid, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    limit: Mapped[Decimal] = mapped_column(Money, nullable=False)
    month: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "category", "month",
            name="unique_budget_user_category_month",
        ),
        CheckConstraint('"limit" > 0', name="check_positive_limit"),
        Index("idx_budgets_user_month", "user_id", "month"),
    )


TENANT_TABLES = {
    ProfileTable.__tablename__: "id",
    ExpenseTable.__tablename__: "user_id",
    BudgetTable.__tablename__: "user_id",
}
