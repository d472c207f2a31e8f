from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantsync.domain.models import Application, Tenant, TenantApplication
from tenantsync.persistence.guards import require_tenant_id, tenant_predicate


class SqlDirectoryReader:
    # Precondition lookups against the tenant directory and entitlement grants.

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_application(self, app_code: str) -> Application | None:
        result = await self._session.execute(
            select(Application).where(Application.app_code == app_code).limit(1)
        )
        return result.scalar_one_or_none()

    async def resolve_tenant_id(self, tenant_ref: str) -> str | None:
        # Accept the canonical id first, then the external organization alias.
        if not tenant_ref:
            return None
        result = await self._session.execute(
            select(Tenant.tenant_id).where(Tenant.tenant_id == tenant_ref).limit(1)
        )
        tenant_id = result.scalar_one_or_none()
        if tenant_id is not None:
            return tenant_id
        result = await self._session.execute(
            select(Tenant.tenant_id).where(Tenant.external_org_id == tenant_ref).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_grant(self, *, tenant_id: str, app_id: str) -> TenantApplication | None:
        require_tenant_id(tenant_id)
        result = await self._session.execute(
            select(TenantApplication)
            .where(
                tenant_predicate(TenantApplication, tenant_id),
                TenantApplication.app_id == app_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
