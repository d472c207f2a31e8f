from __future__ import annotations

import pytest

from tenantsync.core.config import get_settings
from tenantsync.domain.catalog import OperationCatalog, load_catalog
from tenantsync.services.catalog_cache import SkeletonCache
from tenantsync.tests.utils.factories import TENANT_ALIAS, TENANT_ID
from tenantsync.tests.utils.memory_store import MemoryBootstrapStore


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    # Environment overrides applied by one test must not leak into the next.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def catalog() -> OperationCatalog:
    return load_catalog()


@pytest.fixture
def skeleton_cache(catalog: OperationCatalog) -> SkeletonCache:
    return SkeletonCache(catalog)


@pytest.fixture
def store() -> MemoryBootstrapStore:
    # One CRM-entitled tenant with a small org tree, two users and three roles.
    store = MemoryBootstrapStore()
    store.add_tenant(TENANT_ID, external_org_id=TENANT_ALIAS)
    store.add_application("crm")
    store.add_application("hr")
    store.add_application("legacy", status="deprecated")
    store.grant(TENANT_ID, "crm", subscription_tier="professional", enabled_modules=["leads", "accounts"])

    store.add_organization(TENANT_ID, "E-ROOT", name="Acme HQ", level=1)
    store.add_organization(TENANT_ID, "E-SALES", name="Sales", parent_entity_id="E-ROOT", level=2)
    store.add_organization(TENANT_ID, "E-CLOSED", name="Closed Branch", level=2, is_active=False)

    store.add_user(TENANT_ID, "u-ada", name="Ada Lovelace", is_tenant_admin=True)
    store.add_user(TENANT_ID, "u-grace", name="Grace Brewster Hopper")

    store.add_role(
        TENANT_ID,
        "r-sales",
        {"crm": {"leads": ["read", "create"]}, "hr": {"employees": ["read"]}},
        name="Sales Rep",
        priority=10,
    )
    store.add_role(TENANT_ID, "r-hr", {"hr": {"employees": ["read", "update"]}}, name="HR Clerk", priority=20)
    store.add_role(TENANT_ID, "r-admin", None, name="Tenant Admin", priority=1, is_system_role=True)

    store.add_membership(TENANT_ID, "m-1", user_id="u-ada", entity_id="E-ROOT", is_primary=True)
    store.add_membership(TENANT_ID, "m-2", user_id="u-grace", entity_id="E-SALES", membership_type="secondary")
    store.assign_role("ra-1", user_id="u-ada", role_id="r-admin")
    store.assign_role("ra-2", user_id="u-grace", role_id="r-sales", entity_id="E-SALES")

    store.add_credit_account(TENANT_ID, "E-ROOT")
    return store
