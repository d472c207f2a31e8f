from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantsync.domain.models import (
    CreditAccount,
    CreditConfiguration,
    CreditTransaction,
    CreditUsage,
    OrganizationMembership,
    OrganizationUnit,
    Role,
    Tenant,
    TenantUser,
    UserRoleAssignment,
)
from tenantsync.persistence.guards import require_tenant_id, tenant_predicate


class SqlSnapshotReader:
    """Per-collection queries bound to the caller's open transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        # A failed statement aborts the whole Postgres transaction unless it runs in a savepoint.
        async with self._session.begin_nested():
            yield

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        require_tenant_id(tenant_id)
        result = await self._session.execute(
            select(Tenant).where(Tenant.tenant_id == tenant_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_organization_units(self, tenant_id: str) -> list[OrganizationUnit]:
        result = await self._session.execute(
            select(OrganizationUnit)
            .where(
                tenant_predicate(OrganizationUnit, tenant_id),
                OrganizationUnit.is_active.is_(True),
            )
            .order_by(OrganizationUnit.entity_level, OrganizationUnit.entity_name)
        )
        return list(result.scalars().all())

    async def list_users(self, tenant_id: str) -> list[TenantUser]:
        result = await self._session.execute(
            select(TenantUser)
            .where(tenant_predicate(TenantUser, tenant_id), TenantUser.is_active.is_(True))
            .order_by(TenantUser.email)
        )
        return list(result.scalars().all())

    async def list_roles(self, tenant_id: str) -> list[Role]:
        result = await self._session.execute(
            select(Role)
            .where(tenant_predicate(Role, tenant_id))
            .order_by(Role.priority, Role.role_name)
        )
        return list(result.scalars().all())

    async def list_memberships(self, tenant_id: str) -> list[OrganizationMembership]:
        result = await self._session.execute(
            select(OrganizationMembership).where(
                tenant_predicate(OrganizationMembership, tenant_id),
                OrganizationMembership.membership_status == "active",
            )
        )
        return list(result.scalars().all())

    async def list_role_assignments(self, tenant_id: str) -> list[UserRoleAssignment]:
        # Assignments carry no tenant column; scope them through the assigned user.
        result = await self._session.execute(
            select(UserRoleAssignment)
            .join(TenantUser, TenantUser.user_id == UserRoleAssignment.user_id)
            .where(
                tenant_predicate(TenantUser, tenant_id),
                UserRoleAssignment.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def list_cost_configs(self, *, tenant_id: str, app_code: str) -> list[CreditConfiguration]:
        require_tenant_id(tenant_id)
        result = await self._session.execute(
            select(CreditConfiguration).where(
                (CreditConfiguration.tenant_id == tenant_id) | CreditConfiguration.is_global.is_(True),
                CreditConfiguration.is_active.is_(True),
                CreditConfiguration.operation_code.startswith(f"{app_code}.", autoescape=True),
            )
        )
        return list(result.scalars().all())

    async def list_credit_accounts(self, tenant_id: str) -> list[CreditAccount]:
        result = await self._session.execute(
            select(CreditAccount).where(tenant_predicate(CreditAccount, tenant_id))
        )
        return list(result.scalars().all())

    async def sum_allocations(
        self, *, tenant_id: str, entity_ids: Sequence[str], operation_code: str
    ) -> dict[str, Decimal]:
        if not entity_ids:
            return {}
        result = await self._session.execute(
            select(
                CreditTransaction.entity_id,
                func.coalesce(func.sum(CreditTransaction.amount), 0),
            )
            .where(
                tenant_predicate(CreditTransaction, tenant_id),
                CreditTransaction.operation_code == operation_code,
                CreditTransaction.entity_id.in_(list(entity_ids)),
            )
            .group_by(CreditTransaction.entity_id)
        )
        return {str(entity_id): Decimal(str(total or 0)) for entity_id, total in result.all()}

    async def sum_usage(
        self, *, tenant_id: str, entity_ids: Sequence[str], operation_prefix: str
    ) -> dict[str, Decimal]:
        if not entity_ids:
            return {}
        result = await self._session.execute(
            select(
                CreditUsage.entity_id,
                func.coalesce(func.sum(CreditUsage.credits_debited), 0),
            )
            .where(
                tenant_predicate(CreditUsage, tenant_id),
                CreditUsage.operation_code.startswith(operation_prefix, autoescape=True),
                CreditUsage.success.is_(True),
                CreditUsage.entity_id.in_(list(entity_ids)),
            )
            .group_by(CreditUsage.entity_id)
        )
        return {str(entity_id): Decimal(str(total or 0)) for entity_id, total in result.all()}
