"""
Database engine and session factory.

One AsyncEngine (and its connection pool) is shared by every store. Sessions
are short-lived: each logical operation opens one inside a tenant scope and
closes it when the scope ends.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from spend_ledger.config import DatabaseSettings, get_settings


def create_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """Build the pooled async engine from settings."""
    settings = settings or get_settings().database

    options = {"echo": settings.echo}
    if not settings.url.startswith("sqlite"):
        # SQLite pools are managed by the dialect
        options.update(
            pool_pre_ping=settings.pool_pre_ping,
            pool_recycle=settings.pool_recycle,
        )
    return create_async_engine(settings.url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions that keep loaded attributes after commit."""
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        autoflush=False,
    )
