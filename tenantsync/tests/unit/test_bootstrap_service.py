from __future__ import annotations

from decimal import Decimal

import pytest

from tenantsync.core.errors import (
    BootstrapTimeoutError,
    CriticalCollectionError,
    EntitlementDeniedError,
    TenantNotFoundError,
    UnknownApplicationError,
)
from tenantsync.services.bootstrap.fetchers import allocation_operation_code
from tenantsync.services.bootstrap.types import (
    COLLECTION_CREDIT_CONFIGS,
    COLLECTION_ENTITY_CREDITS,
    COLLECTION_ROLE_ASSIGNMENTS,
)
from tenantsync.services.catalog_cache import SkeletonCache
from tenantsync.tests.utils.factories import FIXED_NOW, TENANT_ALIAS, TENANT_ID, build_service
from tenantsync.tests.utils.memory_store import MemoryBootstrapStore


@pytest.mark.asyncio
async def test_assembles_all_collections(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    service = build_service(store, skeleton_cache)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    snapshot = result.snapshot
    collections = snapshot.collections
    assert result.success is True
    assert result.subscription_tier == "professional"
    assert result.enabled_modules == ["leads", "accounts"]
    assert snapshot.snapshot_at == FIXED_NOW
    assert snapshot.tenant_id == TENANT_ID
    assert snapshot.app_code == "crm"
    assert snapshot.warnings == []

    assert collections.tenant.external_org_id == TENANT_ALIAS
    assert [org.org_code for org in collections.organizations] == ["E-ROOT", "E-SALES"]
    assert [user.user_id for user in collections.users] == ["u-ada", "u-grace"]
    grace = collections.users[1]
    assert (grace.first_name, grace.last_name) == ("Grace", "Brewster Hopper")
    assert [a.membership_type for a in collections.employee_assignments] == ["primary", "secondary"]
    assert len(collections.role_assignments) == 2
    assert len(collections.credit_configs) == len(skeleton_cache.get_skeleton("crm"))

    assert snapshot.record_counts == {
        "tenant": 1,
        "organizations": 2,
        "users": 2,
        "roles": 2,
        "employeeAssignments": 2,
        "roleAssignments": 2,
        "creditConfigs": len(skeleton_cache.get_skeleton("crm")),
        "entityCredits": 1,
    }
    assert store.snapshots_opened == store.snapshots_closed == 1


@pytest.mark.asyncio
async def test_roles_are_filtered_to_application(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    service = build_service(store, skeleton_cache)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    roles = result.snapshot.collections.roles
    # The system role survives with no crm permissions; the hr-only role does not.
    assert [role.role_id for role in roles] == ["r-admin", "r-sales"]
    assert roles[0].permissions == []
    assert roles[1].permissions == ["crm.leads.read", "crm.leads.create"]


@pytest.mark.asyncio
async def test_entity_credit_balance(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    store.add_transaction(TENANT_ID, "E-ROOT", allocation_operation_code("crm"), 60)
    store.add_transaction(TENANT_ID, "E-ROOT", allocation_operation_code("crm"), 40)
    store.add_transaction(TENANT_ID, "E-ROOT", allocation_operation_code("hr"), 500)
    store.add_usage(TENANT_ID, "E-ROOT", "crm.leads.export", 30)
    store.add_usage(TENANT_ID, "E-ROOT", "crm.leads.read", 10)
    store.add_usage(TENANT_ID, "E-ROOT", "crm.leads.create", 25, success=False)
    store.add_usage(TENANT_ID, "E-ROOT", "hr.payroll.process", 5)
    service = build_service(store, skeleton_cache)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    (credit,) = result.snapshot.collections.entity_credits
    assert credit.entity_id == "E-ROOT"
    assert credit.allocated_credits == Decimal("100")
    assert credit.used_credits == Decimal("40")
    assert credit.available_credits == Decimal("60")


@pytest.mark.asyncio
async def test_entity_credits_are_read_in_batches(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    for index in range(4):
        entity_id = f"E-{index}"
        store.add_organization(TENANT_ID, entity_id, level=3)
        store.add_credit_account(TENANT_ID, entity_id)
    service = build_service(store, skeleton_cache, bootstrap_entity_batch_size=2)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    # Five accounts in batches of two: three grouped reads per ledger, not five.
    assert len(result.snapshot.collections.entity_credits) == 5
    assert store.calls["sum_allocations"] == 3
    assert store.calls["sum_usage"] == 3
    assert all(credit.available_credits == 0 for credit in result.snapshot.collections.entity_credits)


@pytest.mark.asyncio
async def test_non_critical_failure_degrades_to_warning(
    store: MemoryBootstrapStore, skeleton_cache: SkeletonCache
) -> None:
    store.failures["list_cost_configs"] = RuntimeError('relation "credit_configurations" does not exist')
    service = build_service(store, skeleton_cache)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    assert result.success is True
    assert result.snapshot.collections.credit_configs == []
    assert result.snapshot.record_counts[COLLECTION_CREDIT_CONFIGS] == 0
    assert len(result.snapshot.warnings) == 1
    warning = result.snapshot.warnings[0]
    assert warning.collection == COLLECTION_CREDIT_CONFIGS
    assert "credit_configurations" in warning.error
    # Later collections still load from the same snapshot.
    assert len(result.snapshot.collections.entity_credits) == 1
    assert store.calls["savepoint"] == 4


@pytest.mark.asyncio
async def test_each_failed_non_critical_collection_warns_once(
    store: MemoryBootstrapStore, skeleton_cache: SkeletonCache
) -> None:
    store.failures["list_role_assignments"] = RuntimeError("timeout")
    store.failures["sum_usage"] = RuntimeError("usage table locked")
    service = build_service(store, skeleton_cache)

    result = await service.assemble_bootstrap(TENANT_ID, "crm")

    assert [w.collection for w in result.snapshot.warnings] == [
        COLLECTION_ROLE_ASSIGNMENTS,
        COLLECTION_ENTITY_CREDITS,
    ]
    assert result.snapshot.collections.role_assignments == []
    assert result.snapshot.collections.entity_credits == []


@pytest.mark.asyncio
async def test_critical_failure_aborts_with_named_error(
    store: MemoryBootstrapStore, skeleton_cache: SkeletonCache
) -> None:
    store.failures["list_users"] = RuntimeError("connection reset")
    service = build_service(store, skeleton_cache)

    with pytest.raises(CriticalCollectionError) as exc:
        await service.assemble_bootstrap(TENANT_ID, "crm")

    assert exc.value.collection == "users"
    assert str(exc.value) == "bootstrap.users failed: connection reset"
    assert exc.value.status_code == 500
    assert store.calls["list_roles"] == 0
    assert store.snapshots_closed == 1


@pytest.mark.asyncio
async def test_alias_resolves_to_canonical_tenant(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    service = build_service(store, skeleton_cache)
    result = await service.assemble_bootstrap(TENANT_ALIAS, " CRM ")
    assert result.snapshot.tenant_id == TENANT_ID
    assert result.snapshot.app_code == "crm"


@pytest.mark.asyncio
async def test_preconditions_run_before_snapshot(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    service = build_service(store, skeleton_cache)

    with pytest.raises(UnknownApplicationError):
        await service.assemble_bootstrap(TENANT_ID, "legacy")
    with pytest.raises(UnknownApplicationError):
        await service.assemble_bootstrap(TENANT_ID, "")
    with pytest.raises(TenantNotFoundError):
        await service.assemble_bootstrap("org_unknown", "crm")
    with pytest.raises(EntitlementDeniedError):
        await service.assemble_bootstrap(TENANT_ID, "hr")

    assert store.snapshots_opened == 0


@pytest.mark.asyncio
async def test_slow_snapshot_times_out_and_closes(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    store.delays["list_roles"] = 1.0
    service = build_service(store, skeleton_cache, bootstrap_timeout_s=0.05)

    with pytest.raises(BootstrapTimeoutError) as exc:
        await service.assemble_bootstrap(TENANT_ID, "crm")

    assert exc.value.status_code == 504
    assert store.snapshots_opened == store.snapshots_closed == 1


@pytest.mark.asyncio
async def test_inspection_matches_bootstrap(store: MemoryBootstrapStore, skeleton_cache: SkeletonCache) -> None:
    store.add_cost_config("crm.leads.export", 2)
    store.add_cost_config("crm.leads.export", 0, tenant_id=TENANT_ID)
    service = build_service(store, skeleton_cache)

    bootstrap = await service.assemble_bootstrap(TENANT_ID, "crm")
    tenant_id, app_code, roles = await service.inspect_roles(TENANT_ALIAS, "crm")
    _, _, costs = await service.inspect_credit_configs(TENANT_ID, "crm")
    _, _, credits = await service.inspect_entity_credits(TENANT_ID, "crm")

    assert (tenant_id, app_code) == (TENANT_ID, "crm")
    assert roles == bootstrap.snapshot.collections.roles
    assert costs == bootstrap.snapshot.collections.credit_configs
    assert credits == bootstrap.snapshot.collections.entity_credits


@pytest.mark.asyncio
async def test_inspection_surfaces_collection_failure(
    store: MemoryBootstrapStore, skeleton_cache: SkeletonCache
) -> None:
    store.failures["list_credit_accounts"] = RuntimeError("boom")
    service = build_service(store, skeleton_cache)

    with pytest.raises(CriticalCollectionError) as exc:
        await service.inspect_entity_credits(TENANT_ID, "crm")
    assert exc.value.collection == COLLECTION_ENTITY_CREDITS


@pytest.mark.asyncio
async def test_preconditions_read_application_once(
    store: MemoryBootstrapStore, skeleton_cache: SkeletonCache
) -> None:
    service = build_service(store, skeleton_cache)

    await service.assemble_bootstrap(TENANT_ID, "crm")

    assert store.calls["get_application"] == 1
    assert store.calls["get_grant"] == 1
