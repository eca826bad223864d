"""
Shared fixtures for Spend Ledger tests.

Test strategy:
1. Pure units (validation, periods, models, budget math) need no database
2. Store, engine and facade tests run against a fresh file-backed SQLite
   database per test, created by the same bootstrap used in production
3. No network and no PostgreSQL required
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
import pytest_asyncio

from spend_ledger.accounting import AccountingEngine
from spend_ledger.actions import FinanceActions
from spend_ledger.config import AppSettings, DatabaseSettings
from spend_ledger.services.storage import (
    SQLLedgerStorage,
    SQLProfileStorage,
    create_engine,
    create_session_factory,
)
from spend_ledger.services.storage.bootstrap import init_database
from spend_ledger.tenancy import TenantContextGuard


# Mid-June 2024; "current month" for every facade test
FIXED_NOW = datetime(2024, 6, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_settings(tmp_path) -> DatabaseSettings:
    return DatabaseSettings(
        url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_retries=1,
    )


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        currency_symbol="₹",
        alert_threshold_percent=75,
        note_max_length=500,
    )


@pytest_asyncio.fixture
async def engine(database_settings):
    engine = create_engine(database_settings)
    await init_database(engine, database_settings)
    yield engine
    await engine.dispose()


@pytest.fixture
def guard(engine, database_settings) -> TenantContextGuard:
    return TenantContextGuard(
        create_session_factory(engine),
        tenant_setting=database_settings.tenant_setting,
    )


@pytest.fixture
def ledger(guard) -> SQLLedgerStorage:
    return SQLLedgerStorage(guard)


@pytest.fixture
def profiles(guard) -> SQLProfileStorage:
    return SQLProfileStorage(guard)


@pytest.fixture
def accounting(ledger) -> AccountingEngine:
    return AccountingEngine(ledger)


@pytest.fixture
def actions(ledger, accounting, profiles, app_settings) -> FinanceActions:
    return FinanceActions(
        ledger,
        accounting,
        profiles,
        settings=app_settings,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def tenant_a():
    return uuid4()


@pytest.fixture
def tenant_b():
    return uuid4()
