from __future__ import annotations

from typing import Any

from sqlalchemy.sql.elements import ColumnElement

from tenantsync.core.config import get_settings
from tenantsync.core.errors import TenantSyncError


class TenantPredicateError(TenantSyncError):
    """A tenant-scoped query was about to run without a tenant id."""

    code = "TENANT_PREDICATE_REQUIRED"


def require_tenant_id(tenant_id: str | None, *, scope: str = "query") -> None:
    if not get_settings().authz_require_tenant_predicate:
        return
    if not tenant_id:
        raise TenantPredicateError(f"Tenant predicate required for {scope} but tenant_id is missing")


def tenant_predicate(model: Any, tenant_id: str) -> ColumnElement[bool]:
    # Every tenant-scoped filter is built here so the guard cannot be bypassed.
    require_tenant_id(tenant_id, scope=getattr(model, "__tablename__", "query"))
    return model.tenant_id == tenant_id
