"""Tenant isolation package."""

from spend_ledger.tenancy.guard import (
    TenantContextGuard,
    TenantScope,
    validate_tenant_id,
)

__all__ = [
    "TenantContextGuard",
    "TenantScope",
    "validate_tenant_id",
]
