"""
Component wiring for Spend Ledger

Builds every layer from settings, leaf first:

    engine -> session factory -> tenant guard
           -> ledger / profile stores -> accounting engine -> action facade

DESIGN DECISION: There is exactly one engine (one connection pool) per
process. Every store shares it through the tenant guard, so no component
can open a connection that skipped tenant validation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from spend_ledger.accounting import AccountingEngine
from spend_ledger.actions import FinanceActions
from spend_ledger.config import Settings, get_settings
from spend_ledger.logging_config import get_logger
from spend_ledger.services.storage import (
    SQLLedgerStorage,
    SQLProfileStorage,
    create_engine,
    create_session_factory,
)
from spend_ledger.services.storage.bootstrap import init_database
from spend_ledger.tenancy import TenantContextGuard


logger = get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a caller needs, sharing one connection pool."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    guard: TenantContextGuard
    ledger: SQLLedgerStorage
    profiles: SQLProfileStorage
    accounting: AccountingEngine
    actions: FinanceActions

    async def init_schema(self, settings: Optional[Settings] = None) -> None:
        """Create tables (and row security on PostgreSQL)."""
        settings = settings or get_settings()
        await init_database(self.engine, settings.database)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
        logger.info("components_disposed")


def create_app_components(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings
        engine: An existing engine to share (tests pass a temporary one)
        clock: Override for "now" in the facade

    Returns:
        AppComponents holding every layer
    """
    settings = settings or get_settings()
    engine = engine or create_engine(settings.database)
    session_factory = create_session_factory(engine)

    guard = TenantContextGuard(
        session_factory,
        tenant_setting=settings.database.tenant_setting,
    )
    ledger = SQLLedgerStorage(guard)
    profiles = SQLProfileStorage(guard)
    accounting = AccountingEngine(ledger)
    actions = FinanceActions(
        ledger,
        accounting,
        profiles,
        settings=settings.app,
        clock=clock,
    )

    logger.info(
        "components_created",
        dialect=engine.dialect.name,
        environment=settings.app.app_environment,
    )

    return AppComponents(
        engine=engine,
        session_factory=session_factory,
        guard=guard,
        ledger=ledger,
        profiles=profiles,
        accounting=accounting,
        actions=actions,
    )
