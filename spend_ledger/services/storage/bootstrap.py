"""
Schema bootstrap.

Creates the ledger tables and, on PostgreSQL, turns on row level security
with one policy per table and command. The policies compare each row's
tenant column with the transaction-local setting the tenant guard applies,
so a query that forgot its WHERE clause still sees only one tenant.
Row security is FORCEd so the policies also bind the table owner, which
is usually the role the application connects as.

Run once per deployment:

    python -m spend_ledger.services.storage.bootstrap
"""

import asyncio
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from spend_ledger.config import DatabaseSettings, get_settings
from spend_ledger.logging_config import configure_logging, get_logger
from spend_ledger.services.storage.database import create_engine
from spend_ledger.services.storage.interface import StorageConnectionError
from spend_ledger.services.storage.tables import TENANT_TABLES, Base


logger = get_logger(__name__)

# (policy verb, command, needs USING, needs WITH CHECK)
POLICY_COMMANDS = [
    ("view", "SELECT", True, False),
    ("insert", "INSERT", False, True),
    ("update", "UPDATE", True, True),
    ("delete", "DELETE", True, False),
]

# Profiles are never deleted by the engine
NO_DELETE_TABLES = {"user_profiles"}


def _policy_subject(table: str) -> str:
    return "profile" if table == "user_profiles" else table


def row_security_statements(tenant_setting: str) -> list[str]:
    """DDL that (re)creates the tenant policies on every tenant table."""
    current_tenant = f"nullif(current_setting('{tenant_setting}', true), '')::uuid"
    statements = []

    for table, tenant_column in TENANT_TABLES.items():
        statements.append(f'ALTER TABLE "{table}" ENABLE ROW LEVEL SECURITY')
        statements.append(f'ALTER TABLE "{table}" FORCE ROW LEVEL SECURITY')
        predicate = f"{tenant_column} = {current_tenant}"

        for verb, command, using, check in POLICY_COMMANDS:
            name = f"Users can {verb} own {_policy_subject(table)}"
            statements.append(f'DROP POLICY IF EXISTS "{name}" ON "{table}"')
            if verb == "delete" and table in NO_DELETE_TABLES:
                continue

            clauses = []
            if using:
                clauses.append(f"USING ({predicate})")
            if check:
                clauses.append(f"WITH CHECK ({predicate})")
            statements.append(
                f'CREATE POLICY "{name}" ON "{table}" FOR {command} ' + " ".join(clauses)
            )

    return statements


async def _create_schema(conn: AsyncConnection, tenant_setting: str) -> None:
    await conn.run_sync(Base.metadata.create_all)
    logger.info("schema_created", tables=sorted(Base.metadata.tables))

    if conn.dialect.name != "postgresql":
        logger.info("row_security_skipped", dialect=conn.dialect.name)
        return

    for statement in row_security_statements(tenant_setting):
        await conn.execute(text(statement))
    logger.info("row_security_enabled", tables=sorted(TENANT_TABLES))


async def init_database(
    engine: AsyncEngine,
    settings: Optional[DatabaseSettings] = None,
) -> None:
    """
    Create tables and row security policies.

    Connection failures are retried with exponential backoff; anything
    else (bad DDL, missing privileges) fails immediately.

    Raises:
        StorageConnectionError: If the database stays unreachable
    """
    settings = settings or get_settings().database

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(settings.connect_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type((OperationalError, InterfaceError, OSError)),
            reraise=False,
        ):
            with attempt:
                async with engine.begin() as conn:
                    await _create_schema(conn, settings.tenant_setting)
    except RetryError as e:
        cause = e.last_attempt.exception()
        logger.error("database_unreachable", attempts=settings.connect_retries, error=str(cause))
        raise StorageConnectionError(
            f"Could not connect to database: {cause}",
            operation="init_database",
        ) from cause


async def _main() -> None:
    configure_logging()
    settings = get_settings().database
    engine = create_engine(settings)
    try:
        await init_database(engine, settings)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(_main())
