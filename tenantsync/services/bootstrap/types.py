from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from tenantsync.services.costs.resolution import ResolvedCost


COLLECTION_TENANT = "tenant"
COLLECTION_ORGANIZATIONS = "organizations"
COLLECTION_USERS = "users"
COLLECTION_ROLES = "roles"
COLLECTION_EMPLOYEE_ASSIGNMENTS = "employeeAssignments"
COLLECTION_ROLE_ASSIGNMENTS = "roleAssignments"
COLLECTION_CREDIT_CONFIGS = "creditConfigs"
COLLECTION_ENTITY_CREDITS = "entityCredits"

CRITICAL_COLLECTIONS = (
    COLLECTION_TENANT,
    COLLECTION_ORGANIZATIONS,
    COLLECTION_USERS,
    COLLECTION_ROLES,
)
NON_CRITICAL_COLLECTIONS = (
    COLLECTION_EMPLOYEE_ASSIGNMENTS,
    COLLECTION_ROLE_ASSIGNMENTS,
    COLLECTION_CREDIT_CONFIGS,
    COLLECTION_ENTITY_CREDITS,
)


@dataclass(frozen=True)
class TenantRecord:
    tenant_id: str
    company_name: str
    external_org_id: str | None
    is_active: bool


@dataclass(frozen=True)
class OrganizationRecord:
    org_code: str
    org_name: str
    parent_id: str | None
    level: int | None
    currency: str | None
    is_active: bool


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    external_user_id: str | None
    email: str
    first_name: str
    last_name: str
    is_tenant_admin: bool
    is_active: bool


@dataclass(frozen=True)
class RoleRecord:
    role_id: str
    role_name: str
    # Flattened "app.module.operation" strings for the requested application only.
    permissions: list[str]
    priority: int
    is_system_role: bool


@dataclass(frozen=True)
class EmployeeAssignmentRecord:
    assignment_id: str
    user_id: str
    entity_id: str
    membership_type: str
    is_primary: bool
    access_level: str | None


@dataclass(frozen=True)
class RoleAssignmentRecord:
    assignment_id: str
    user_id: str
    role_id: str
    entity_id: str | None
    assigned_at: datetime | None
    is_active: bool


@dataclass(frozen=True)
class EntityCreditRecord:
    entity_id: str
    allocated_credits: Decimal
    used_credits: Decimal
    is_active: bool

    @property
    def available_credits(self) -> Decimal:
        return self.allocated_credits - self.used_credits


@dataclass(frozen=True)
class CollectionWarning:
    collection: str
    error: str


@dataclass(frozen=True)
class BootstrapCollections:
    tenant: TenantRecord
    organizations: list[OrganizationRecord]
    users: list[UserRecord]
    roles: list[RoleRecord]
    employee_assignments: list[EmployeeAssignmentRecord]
    role_assignments: list[RoleAssignmentRecord]
    credit_configs: list[ResolvedCost]
    entity_credits: list[EntityCreditRecord]

    def record_counts(self) -> dict[str, int]:
        return {
            COLLECTION_TENANT: 1 if self.tenant is not None else 0,
            COLLECTION_ORGANIZATIONS: len(self.organizations),
            COLLECTION_USERS: len(self.users),
            COLLECTION_ROLES: len(self.roles),
            COLLECTION_EMPLOYEE_ASSIGNMENTS: len(self.employee_assignments),
            COLLECTION_ROLE_ASSIGNMENTS: len(self.role_assignments),
            COLLECTION_CREDIT_CONFIGS: len(self.credit_configs),
            COLLECTION_ENTITY_CREDITS: len(self.entity_credits),
        }


@dataclass(frozen=True)
class BootstrapSnapshot:
    # Point-in-time aggregate for one (tenant, application); never persisted.
    snapshot_at: datetime
    tenant_id: str
    app_code: str
    collections: BootstrapCollections
    record_counts: dict[str, int]
    warnings: list[CollectionWarning] = field(default_factory=list)


@dataclass(frozen=True)
class BootstrapResult:
    snapshot: BootstrapSnapshot
    subscription_tier: str | None
    enabled_modules: list[str]

    @property
    def success(self) -> bool:
        # Warnings describe degraded collections; they never turn a result into a failure.
        return True
