"""
SQL Profile Storage

One row per tenant, created lazily. Inserts use ON CONFLICT DO NOTHING so
two first requests racing for the same tenant both end up reading the
single row that won.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import select, update

from spend_ledger.logging_config import get_logger
from spend_ledger.models.finance import Profile
from spend_ledger.services.storage.interface import (
    ProfileStorageInterface,
    StorageError,
)
from spend_ledger.services.storage.sql_ledger import upsert_insert
from spend_ledger.services.storage.tables import ProfileTable
from spend_ledger.validation import (
    validate_optional_text,
    validate_required_text,
    validate_uuid,
)

if TYPE_CHECKING:
    from spend_ledger.tenancy.guard import TenantContextGuard, TenantScope


logger = get_logger(__name__)


class SQLProfileStorage(ProfileStorageInterface):
    """Relational implementation of tenant profiles."""

    def __init__(self, guard: "TenantContextGuard"):
        self._guard = guard

    async def _select(self, scope: "TenantScope") -> Optional[Profile]:
        stmt = select(ProfileTable).where(ProfileTable.id == scope.tenant_id)
        row = (await scope.session.scalars(stmt)).one_or_none()
        return Profile.model_validate(row) if row is not None else None

    async def _insert(
        self,
        scope: "TenantScope",
        name: str,
        email: str,
    ) -> Optional[Profile]:
        """Insert-or-nothing; None when any unique key already exists."""
        table = ProfileTable.__table__
        insert = upsert_insert(scope.session)
        stmt = (
            insert(table)
            .values(
                id=scope.tenant_id,
                name=name,
                email=email,
                updated_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing()
            .returning(*table.c)
        )
        row = (await scope.session.execute(stmt)).mappings().one_or_none()
        return Profile.model_validate(dict(row)) if row is not None else None

    async def get_profile(self, tenant_id: Any) -> Optional[Profile]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        async with self._guard.scope(tenant, "get_profile") as scope:
            return await self._select(scope)

    async def create_profile(
        self,
        tenant_id: Any,
        name: str,
        email: str,
    ) -> Optional[Profile]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        name = validate_required_text(name, "Name")
        email = validate_required_text(email, "Email")

        async with self._guard.scope(tenant, "create_profile") as scope:
            created = await self._insert(scope, name, email)

        if created is not None:
            logger.info("profile_created", tenant_id=str(tenant))
        return created

    async def get_or_create_profile(
        self,
        tenant_id: Any,
        email: str,
        name: str,
    ) -> Profile:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        email = validate_required_text(email, "Email")
        name = validate_required_text(name, "Name")

        async with self._guard.scope(tenant, "get_or_create_profile") as scope:
            profile = await self._select(scope)
            if profile is None:
                profile = await self._insert(scope, name, email)
                if profile is not None:
                    logger.info("profile_created", tenant_id=str(tenant))
                else:
                    # Lost the race to a concurrent insert, or the email
                    # already belongs to someone else
                    profile = await self._select(scope)

        if profile is None:
            logger.error("profile_unavailable", tenant_id=str(tenant))
            raise StorageError(
                "Failed to get or create profile",
                operation="get_or_create_profile",
            )
        return profile

    async def update_note(
        self,
        tenant_id: Any,
        note: Optional[str],
    ) -> Optional[Profile]:
        tenant = validate_uuid(tenant_id, label="tenant ID")
        note = validate_optional_text(note, "Note")

        async with self._guard.scope(tenant, "update_note") as scope:
            stmt = (
                update(ProfileTable)
                .where(ProfileTable.id == scope.tenant_id)
                .values(note=note, updated_at=datetime.now(timezone.utc))
                .returning(ProfileTable)
            )
            row = (await scope.session.scalars(stmt)).one_or_none()
            updated = Profile.model_validate(row) if row is not None else None

        if updated is not None:
            logger.info("profile_note_updated", tenant_id=str(tenant))
        return updated
