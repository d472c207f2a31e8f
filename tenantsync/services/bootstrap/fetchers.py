from __future__ import annotations

from decimal import Decimal
from typing import Iterator, Sequence

from tenantsync.core.errors import TenantNotFoundError
from tenantsync.domain.permissions import flatten_permissions
from tenantsync.services.bootstrap.store import SnapshotReader
from tenantsync.services.bootstrap.types import (
    EmployeeAssignmentRecord,
    EntityCreditRecord,
    OrganizationRecord,
    RoleAssignmentRecord,
    RoleRecord,
    TenantRecord,
    UserRecord,
)
from tenantsync.services.catalog_cache import SkeletonCache
from tenantsync.services.costs.resolution import ResolvedCost, resolve_costs


DEFAULT_MEMBERSHIP_TYPE = "primary"


def allocation_operation_code(app_code: str) -> str:
    # Ledger rows that fund an application carry this synthetic operation code.
    return f"application_allocation:{app_code}"


def _batches(values: Sequence[str], size: int) -> Iterator[list[str]]:
    size = max(1, size)
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


def _split_name(name: str | None) -> tuple[str, str]:
    parts = (name or "").split(" ")
    return parts[0], " ".join(parts[1:])


async def fetch_tenant(reader: SnapshotReader, tenant_id: str) -> TenantRecord:
    row = await reader.get_tenant(tenant_id)
    if row is None:
        raise TenantNotFoundError(tenant_id)
    return TenantRecord(
        tenant_id=row.tenant_id,
        company_name=row.company_name or "",
        external_org_id=row.external_org_id,
        is_active=True if row.is_active is None else bool(row.is_active),
    )


async def fetch_organizations(reader: SnapshotReader, tenant_id: str) -> list[OrganizationRecord]:
    rows = await reader.list_organization_units(tenant_id)
    return [
        OrganizationRecord(
            org_code=row.entity_id,
            org_name=row.entity_name or "",
            parent_id=row.parent_entity_id,
            level=row.entity_level,
            currency=row.currency,
            is_active=True if row.is_active is None else bool(row.is_active),
        )
        for row in rows
    ]


async def fetch_users(reader: SnapshotReader, tenant_id: str) -> list[UserRecord]:
    rows = await reader.list_users(tenant_id)
    users: list[UserRecord] = []
    for row in rows:
        first_name, last_name = _split_name(row.name)
        users.append(
            UserRecord(
                user_id=row.user_id,
                external_user_id=row.external_user_id,
                email=row.email or "",
                first_name=first_name,
                last_name=last_name,
                is_tenant_admin=bool(row.is_tenant_admin),
                is_active=True if row.is_active is None else bool(row.is_active),
            )
        )
    return users


async def fetch_roles(reader: SnapshotReader, tenant_id: str, app_code: str) -> list[RoleRecord]:
    """Roles relevant to one application.

    A role is kept when it grants at least one operation in ``app_code`` or is
    a system role; system roles are needed downstream to resolve access levels
    even when they carry no application-specific permissions.
    """
    rows = await reader.list_roles(tenant_id)
    roles: list[RoleRecord] = []
    for row in rows:
        permissions = flatten_permissions(row.permissions, app_code)
        is_system_role = bool(row.is_system_role)
        if not permissions and not is_system_role:
            continue
        roles.append(
            RoleRecord(
                role_id=row.role_id,
                role_name=row.role_name or "",
                permissions=permissions,
                priority=row.priority or 0,
                is_system_role=is_system_role,
            )
        )
    return roles


async def fetch_employee_assignments(
    reader: SnapshotReader, tenant_id: str
) -> list[EmployeeAssignmentRecord]:
    rows = await reader.list_memberships(tenant_id)
    return [
        EmployeeAssignmentRecord(
            assignment_id=row.membership_id,
            user_id=row.user_id,
            entity_id=row.entity_id,
            membership_type=row.membership_type or DEFAULT_MEMBERSHIP_TYPE,
            is_primary=bool(row.is_primary),
            access_level=row.access_level,
        )
        for row in rows
    ]


async def fetch_role_assignments(reader: SnapshotReader, tenant_id: str) -> list[RoleAssignmentRecord]:
    rows = await reader.list_role_assignments(tenant_id)
    return [
        RoleAssignmentRecord(
            assignment_id=row.id,
            user_id=row.user_id,
            role_id=row.role_id,
            entity_id=row.entity_id,
            assigned_at=row.assigned_at,
            is_active=True if row.is_active is None else bool(row.is_active),
        )
        for row in rows
    ]


async def fetch_credit_configs(
    reader: SnapshotReader,
    tenant_id: str,
    app_code: str,
    *,
    skeleton_cache: SkeletonCache,
) -> list[ResolvedCost]:
    return await resolve_costs(app_code, tenant_id, reader=reader, skeleton_cache=skeleton_cache)


async def fetch_entity_credits(
    reader: SnapshotReader,
    tenant_id: str,
    app_code: str,
    *,
    batch_size: int,
) -> list[EntityCreditRecord]:
    """Derive allocated/used/available per credit account.

    Ledger and usage sums are read with one grouped IN (...) query per batch of
    entity ids, never one query per entity.
    """
    accounts = await reader.list_credit_accounts(tenant_id)
    if not accounts:
        return []
    entity_ids = list(dict.fromkeys(account.entity_id for account in accounts if account.entity_id))

    allocated: dict[str, Decimal] = {}
    used: dict[str, Decimal] = {}
    for batch in _batches(entity_ids, batch_size):
        allocated.update(
            await reader.sum_allocations(
                tenant_id=tenant_id,
                entity_ids=batch,
                operation_code=allocation_operation_code(app_code),
            )
        )
        used.update(
            await reader.sum_usage(
                tenant_id=tenant_id,
                entity_ids=batch,
                operation_prefix=f"{app_code}.",
            )
        )

    zero = Decimal("0")
    return [
        EntityCreditRecord(
            entity_id=account.entity_id or "",
            allocated_credits=allocated.get(account.entity_id or "", zero),
            used_credits=used.get(account.entity_id or "", zero),
            is_active=True if account.is_active is None else bool(account.is_active),
        )
        for account in accounts
    ]
