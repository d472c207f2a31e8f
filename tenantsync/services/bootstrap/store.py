from __future__ import annotations

from decimal import Decimal
from typing import AsyncContextManager, Protocol, Sequence

from tenantsync.domain.models import (
    Application,
    CreditAccount,
    CreditConfiguration,
    OrganizationMembership,
    OrganizationUnit,
    Role,
    Tenant,
    TenantApplication,
    TenantUser,
    UserRoleAssignment,
)


class DirectoryReader(Protocol):
    """Precondition lookups; run outside the snapshot transaction."""

    async def get_application(self, app_code: str) -> Application | None: ...

    async def resolve_tenant_id(self, tenant_ref: str) -> str | None: ...

    async def get_grant(self, *, tenant_id: str, app_id: str) -> TenantApplication | None: ...


class SnapshotReader(Protocol):
    """Collection reads that all observe one transaction snapshot."""

    def savepoint(self) -> AsyncContextManager[None]: ...

    async def get_tenant(self, tenant_id: str) -> Tenant | None: ...

    async def list_organization_units(self, tenant_id: str) -> list[OrganizationUnit]: ...

    async def list_users(self, tenant_id: str) -> list[TenantUser]: ...

    async def list_roles(self, tenant_id: str) -> list[Role]: ...

    async def list_memberships(self, tenant_id: str) -> list[OrganizationMembership]: ...

    async def list_role_assignments(self, tenant_id: str) -> list[UserRoleAssignment]: ...

    async def list_cost_configs(self, *, tenant_id: str, app_code: str) -> list[CreditConfiguration]: ...

    async def list_credit_accounts(self, tenant_id: str) -> list[CreditAccount]: ...

    async def sum_allocations(
        self, *, tenant_id: str, entity_ids: Sequence[str], operation_code: str
    ) -> dict[str, Decimal]: ...

    async def sum_usage(
        self, *, tenant_id: str, entity_ids: Sequence[str], operation_prefix: str
    ) -> dict[str, Decimal]: ...


class BootstrapStore(Protocol):
    def directory(self) -> AsyncContextManager[DirectoryReader]: ...

    def snapshot(self) -> AsyncContextManager[SnapshotReader]: ...
