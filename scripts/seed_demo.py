from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import sys

from tenantsync.domain.models import (
    Application,
    CreditAccount,
    CreditConfiguration,
    CreditTransaction,
    CreditUsage,
    OrganizationMembership,
    OrganizationUnit,
    Role,
    Tenant,
    TenantApplication,
    TenantUser,
    UserRoleAssignment,
)
from tenantsync.persistence.db import SessionLocal
from tenantsync.services.bootstrap.fetchers import allocation_operation_code


DEMO_TENANT_ID = "t-demo"
DEMO_ORG_ALIAS = "org_demo"
DEMO_APPS = ("crm", "hr", "accounting")


@dataclass(frozen=True)
class DemoRole:
    role_id: str
    name: str
    permissions: dict
    priority: int
    is_system_role: bool = False


def build_demo_roles() -> tuple[DemoRole, ...]:
    # Mix app-specific, cross-app and system roles so role filtering is visible per app.
    return (
        DemoRole("r-demo-admin", "Tenant Administrator", {}, 1, is_system_role=True),
        DemoRole(
            "r-demo-sales",
            "Sales Representative",
            {"crm": {"leads": ["read", "create", "update", "export"], "accounts": ["read"]}},
            10,
        ),
        DemoRole(
            "r-demo-hr",
            "HR Generalist",
            {"hr": {"employees": ["read", "update"], "leave": ["read", "approve"]}},
            20,
        ),
        DemoRole(
            "r-demo-controller",
            "Controller",
            {
                "accounting": {"journals": ["read", "post"], "reports": ["read", "export"]},
                "crm": {"accounts": ["read"]},
            },
            30,
        ),
    )


def build_demo_rows(now: datetime) -> list[object]:
    # Deterministic ids keep the seed idempotent across reruns.
    rows: list[object] = [
        Tenant(
            tenant_id=DEMO_TENANT_ID,
            company_name="Demo Industries",
            external_org_id=DEMO_ORG_ALIAS,
            subdomain="demo",
            is_active=True,
        )
    ]
    for app_code in DEMO_APPS:
        rows.append(
            Application(
                app_id=f"app-{app_code}",
                app_code=app_code,
                app_name=app_code.upper(),
                status="active",
            )
        )
        rows.append(
            TenantApplication(
                id=f"grant-{DEMO_TENANT_ID}-{app_code}",
                tenant_id=DEMO_TENANT_ID,
                app_id=f"app-{app_code}",
                is_enabled=True,
                subscription_tier="professional",
                enabled_modules=None,
                expires_at=now + timedelta(days=365),
            )
        )

    for entity_id, name, parent_id, level, currency in (
        ("E-HQ", "Headquarters", None, 1, "USD"),
        ("E-EMEA", "EMEA", "E-HQ", 2, "EUR"),
    ):
        rows.append(
            OrganizationUnit(
                entity_id=entity_id,
                tenant_id=DEMO_TENANT_ID,
                entity_name=name,
                parent_entity_id=parent_id,
                entity_level=level,
                currency=currency,
                is_active=True,
            )
        )
        rows.append(
            CreditAccount(
                credit_id=f"credit-{entity_id.lower()}",
                tenant_id=DEMO_TENANT_ID,
                entity_id=entity_id,
                is_active=True,
            )
        )

    for user_id, email, name, is_admin, entity_id in (
        ("u-demo-1", "owner@demo.test", "Dana Owner", True, "E-HQ"),
        ("u-demo-2", "sales@demo.test", "Sam Seller", False, "E-EMEA"),
    ):
        rows.append(
            TenantUser(
                user_id=user_id,
                tenant_id=DEMO_TENANT_ID,
                email=email,
                name=name,
                is_tenant_admin=is_admin,
                is_active=True,
            )
        )
        rows.append(
            OrganizationMembership(
                membership_id=f"m-{user_id}",
                tenant_id=DEMO_TENANT_ID,
                user_id=user_id,
                entity_id=entity_id,
                membership_type="primary",
                membership_status="active",
                is_primary=True,
            )
        )

    for role in build_demo_roles():
        rows.append(
            Role(
                role_id=role.role_id,
                tenant_id=DEMO_TENANT_ID,
                role_name=role.name,
                permissions=role.permissions,
                priority=role.priority,
                is_system_role=role.is_system_role,
            )
        )
    for assignment_id, user_id, role_id, entity_id in (
        ("ra-demo-1", "u-demo-1", "r-demo-admin", None),
        ("ra-demo-2", "u-demo-2", "r-demo-sales", "E-EMEA"),
    ):
        rows.append(
            UserRoleAssignment(
                id=assignment_id,
                user_id=user_id,
                role_id=role_id,
                entity_id=entity_id,
                assigned_at=now,
                is_active=True,
            )
        )

    # Global price for lead export, waived for the demo tenant.
    for config_id, tenant_id, cost in (
        ("cfg-global-crm-export", None, "2"),
        ("cfg-demo-crm-export", DEMO_TENANT_ID, "0"),
    ):
        rows.append(
            CreditConfiguration(
                config_id=config_id,
                tenant_id=tenant_id,
                operation_code="crm.leads.export",
                credit_cost=Decimal(cost),
                unit="operation",
                is_global=tenant_id is None,
                is_active=True,
            )
        )
    rows.append(
        CreditTransaction(
            transaction_id="txn-demo-1",
            tenant_id=DEMO_TENANT_ID,
            entity_id="E-HQ",
            operation_code=allocation_operation_code("crm"),
            amount=Decimal("100"),
        )
    )
    rows.append(
        CreditUsage(
            usage_id="usage-demo-1",
            tenant_id=DEMO_TENANT_ID,
            entity_id="E-HQ",
            operation_code="crm.leads.create",
            credits_debited=Decimal("40"),
            success=True,
        )
    )
    return rows


async def seed_demo() -> int:
    # Use the shared async session factory so env config matches the API process.
    async with SessionLocal() as session:
        if await session.get(Tenant, DEMO_TENANT_ID) is not None:
            print("Demo tenant already seeded; skipping.")
            return 0
        rows = build_demo_rows(datetime.now(timezone.utc))
        for row in rows:
            # Applications are shared across tenants; merge keeps reruns on other tenants safe.
            if isinstance(row, Application):
                await session.merge(row)
            else:
                session.add(row)
        await session.commit()
        print(f"Seeded demo tenant {DEMO_TENANT_ID} (alias {DEMO_ORG_ALIAS}) with {len(rows)} rows.")
        return 0


def main() -> int:
    # Surface clear failures and exit non-zero so CI/dev scripts can detect issues.
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
