from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tenantsync.services.bootstrap.types import (
    BootstrapResult,
    EmployeeAssignmentRecord,
    EntityCreditRecord,
    OrganizationRecord,
    RoleAssignmentRecord,
    RoleRecord,
    TenantRecord,
    UserRecord,
)
from tenantsync.services.costs.resolution import ResolvedCost


class CamelModel(BaseModel):
    # Downstream bootstrap flows consume camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BootstrapRequest(CamelModel):
    app_code: str | None = Field(default=None, max_length=64)
    requested_by: str | None = Field(default=None, max_length=128)


class TenantOut(CamelModel):
    tenant_id: str
    company_name: str
    external_org_id: str | None
    is_active: bool


class OrganizationOut(CamelModel):
    org_code: str
    org_name: str
    parent_id: str | None
    level: int | None
    currency: str | None
    is_active: bool


class UserOut(CamelModel):
    user_id: str
    external_user_id: str | None
    email: str
    first_name: str
    last_name: str
    is_tenant_admin: bool
    is_active: bool


class RoleOut(CamelModel):
    role_id: str
    role_name: str
    permissions: list[str]
    priority: int
    is_system_role: bool


class EmployeeAssignmentOut(CamelModel):
    assignment_id: str
    user_id: str
    entity_id: str
    membership_type: str
    is_primary: bool
    access_level: str | None


class RoleAssignmentOut(CamelModel):
    assignment_id: str
    user_id: str
    role_id: str
    entity_id: str | None
    assigned_at: datetime | None
    is_active: bool


class CreditConfigOut(CamelModel):
    config_id: str | None
    operation_code: str
    operation_name: str
    credit_cost: float
    unit: str
    scope: str
    is_global: bool


class EntityCreditOut(CamelModel):
    entity_id: str
    allocated_credits: float
    used_credits: float
    available_credits: float
    is_active: bool


class WarningOut(CamelModel):
    collection: str
    error: str


class BootstrapData(CamelModel):
    tenant: TenantOut
    organizations: list[OrganizationOut]
    users: list[UserOut]
    roles: list[RoleOut]
    employee_assignments: list[EmployeeAssignmentOut]
    role_assignments: list[RoleAssignmentOut]
    credit_configs: list[CreditConfigOut]
    entity_credits: list[EntityCreditOut]


class BootstrapResponse(CamelModel):
    success: bool
    app_code: str
    tenant_id: str
    snapshot_at: datetime
    subscription_tier: str | None
    enabled_modules: list[str]
    data: BootstrapData
    record_counts: dict[str, int]
    warnings: list[WarningOut]


class RolesResponse(CamelModel):
    tenant_id: str
    app_code: str
    roles: list[RoleOut]


class CreditConfigsResponse(CamelModel):
    tenant_id: str
    app_code: str
    credit_configs: list[CreditConfigOut]


class EntityCreditsResponse(CamelModel):
    tenant_id: str
    app_code: str
    entity_credits: list[EntityCreditOut]


def tenant_out(record: TenantRecord) -> TenantOut:
    return TenantOut(
        tenant_id=record.tenant_id,
        company_name=record.company_name,
        external_org_id=record.external_org_id,
        is_active=record.is_active,
    )


def organization_out(record: OrganizationRecord) -> OrganizationOut:
    return OrganizationOut(
        org_code=record.org_code,
        org_name=record.org_name,
        parent_id=record.parent_id,
        level=record.level,
        currency=record.currency,
        is_active=record.is_active,
    )


def user_out(record: UserRecord) -> UserOut:
    return UserOut(
        user_id=record.user_id,
        external_user_id=record.external_user_id,
        email=record.email,
        first_name=record.first_name,
        last_name=record.last_name,
        is_tenant_admin=record.is_tenant_admin,
        is_active=record.is_active,
    )


def role_out(record: RoleRecord) -> RoleOut:
    return RoleOut(
        role_id=record.role_id,
        role_name=record.role_name,
        permissions=list(record.permissions),
        priority=record.priority,
        is_system_role=record.is_system_role,
    )


def employee_assignment_out(record: EmployeeAssignmentRecord) -> EmployeeAssignmentOut:
    return EmployeeAssignmentOut(
        assignment_id=record.assignment_id,
        user_id=record.user_id,
        entity_id=record.entity_id,
        membership_type=record.membership_type,
        is_primary=record.is_primary,
        access_level=record.access_level,
    )


def role_assignment_out(record: RoleAssignmentRecord) -> RoleAssignmentOut:
    return RoleAssignmentOut(
        assignment_id=record.assignment_id,
        user_id=record.user_id,
        role_id=record.role_id,
        entity_id=record.entity_id,
        assigned_at=record.assigned_at,
        is_active=record.is_active,
    )


def credit_config_out(cost: ResolvedCost) -> CreditConfigOut:
    return CreditConfigOut(
        config_id=cost.config_id,
        operation_code=cost.operation_code,
        operation_name=cost.operation_name,
        credit_cost=float(cost.credit_cost),
        unit=cost.unit,
        scope=cost.scope,
        is_global=cost.is_global,
    )


def entity_credit_out(record: EntityCreditRecord) -> EntityCreditOut:
    return EntityCreditOut(
        entity_id=record.entity_id,
        allocated_credits=float(record.allocated_credits),
        used_credits=float(record.used_credits),
        available_credits=float(record.available_credits),
        is_active=record.is_active,
    )


def bootstrap_response(result: BootstrapResult) -> BootstrapResponse:
    snapshot = result.snapshot
    collections = snapshot.collections
    return BootstrapResponse(
        success=result.success,
        app_code=snapshot.app_code,
        tenant_id=snapshot.tenant_id,
        snapshot_at=snapshot.snapshot_at,
        subscription_tier=result.subscription_tier,
        enabled_modules=list(result.enabled_modules),
        data=BootstrapData(
            tenant=tenant_out(collections.tenant),
            organizations=[organization_out(item) for item in collections.organizations],
            users=[user_out(item) for item in collections.users],
            roles=[role_out(item) for item in collections.roles],
            employee_assignments=[employee_assignment_out(item) for item in collections.employee_assignments],
            role_assignments=[role_assignment_out(item) for item in collections.role_assignments],
            credit_configs=[credit_config_out(item) for item in collections.credit_configs],
            entity_credits=[entity_credit_out(item) for item in collections.entity_credits],
        ),
        record_counts=dict(snapshot.record_counts),
        warnings=[WarningOut(collection=item.collection, error=item.error) for item in snapshot.warnings],
    )
