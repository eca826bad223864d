"""
Tenant Context Guard

DESIGN DECISION: The tenant id is threaded explicitly through every store
call instead of living in connection-global state.

scope() is the ONLY way a store obtains a database session:
1. The tenant id is validated before a connection is checked out
2. A transaction is opened on a pooled connection
3. The tenant security context is set on THAT transaction
   (PostgreSQL set_config(..., is_local => true))
4. The store runs its queries, filtering on the validated id

Because the setting is transaction-local it disappears at commit or
rollback, so a pooled connection reused by another tenant starts clean.
Row security policies created by bootstrap read the same setting as a
second line of defence behind the explicit WHERE clauses.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spend_ledger.config import get_settings
from spend_ledger.logging_config import get_logger
from spend_ledger.services.storage.interface import (
    StorageConnectionError,
    StorageError,
)
from spend_ledger.validation import validate_uuid


logger = get_logger(__name__)


def validate_tenant_id(value: Any) -> UUID:
    """
    Normalize a caller-supplied tenant id.

    Raises:
        ValidationError: If it is not a canonical UUID
    """
    return validate_uuid(value, label="tenant ID")


@dataclass(frozen=True)
class TenantScope:
    """A validated tenant id bound to the session it may query with."""

    tenant_id: UUID
    session: AsyncSession


class TenantContextGuard:
    """Hands out tenant-scoped transactions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tenant_setting: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self._tenant_setting = tenant_setting or get_settings().database.tenant_setting

    @asynccontextmanager
    async def scope(
        self,
        tenant_id: Any,
        operation: str,
    ) -> AsyncIterator[TenantScope]:
        """
        Open a transaction bound to one tenant.

        The transaction commits when the block exits normally and rolls
        back otherwise. Database errors, including those raised at
        commit, are re-raised as StorageError.
        """
        tenant = validate_tenant_id(tenant_id)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._apply_context(session, tenant)
                    yield TenantScope(tenant_id=tenant, session=session)
        except SQLAlchemyError as e:
            reason = str(getattr(e, "orig", None) or e)
            logger.error(
                "storage_operation_failed",
                operation=operation,
                tenant_id=str(tenant),
                error_type=type(e).__name__,
                error=reason,
            )
            message = f"Failed to {operation.replace('_', ' ')}: {reason}"
            if isinstance(e, DBAPIError) and e.connection_invalidated:
                raise StorageConnectionError(message, operation=operation) from e
            raise StorageError(message, operation=operation) from e

    async def _apply_context(self, session: AsyncSession, tenant: UUID) -> None:
        if session.get_bind().dialect.name != "postgresql":
            return
        await session.execute(
            text("SELECT set_config(:setting, :tenant, true)"),
            {"setting": self._tenant_setting, "tenant": str(tenant)},
        )
