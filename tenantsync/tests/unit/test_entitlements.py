from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tenantsync.core.errors import (
    EntitlementDeniedError,
    EntitlementExpiredError,
    TenantNotFoundError,
    UnknownApplicationError,
)
from tenantsync.domain.models import Application
from tenantsync.services.entitlements import (
    DENIED_GRANT_DISABLED,
    DENIED_NO_GRANT,
    EntitlementAllowed,
    EntitlementDenied,
    EntitlementExpired,
    check_entitlement,
    normalize_app_code,
    require_active_application,
    require_entitlement,
    resolve_tenant,
)
from tenantsync.tests.utils.memory_store import MemoryBootstrapStore, MemoryDirectoryReader


NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _directory() -> tuple[MemoryBootstrapStore, MemoryDirectoryReader]:
    store = MemoryBootstrapStore()
    store.add_tenant("t-1", external_org_id="org_1")
    store.add_application("crm")
    store.add_application("legacy", status="inactive")
    return store, MemoryDirectoryReader(store)


def _crm(store: MemoryBootstrapStore) -> Application:
    return next(app for app in store.applications if app.app_code == "crm")


@pytest.mark.asyncio
async def test_active_grant_is_allowed() -> None:
    store, directory = _directory()
    store.grant("t-1", "crm", subscription_tier="enterprise", enabled_modules=["leads"])

    decision = await check_entitlement(directory, tenant_id="t-1", application=_crm(store), now=NOW)

    assert decision == EntitlementAllowed(subscription_tier="enterprise", enabled_modules=["leads"])
    assert require_entitlement(decision, tenant_id="t-1", app_code="crm") is decision


@pytest.mark.asyncio
async def test_missing_grant_is_denied() -> None:
    store, directory = _directory()
    decision = await check_entitlement(directory, tenant_id="t-1", application=_crm(store), now=NOW)
    assert decision == EntitlementDenied(DENIED_NO_GRANT)
    with pytest.raises(EntitlementDeniedError) as exc:
        require_entitlement(decision, tenant_id="t-1", app_code="crm")
    assert exc.value.status_code == 403
    assert exc.value.code == "ENTITLEMENT_DENIED"


@pytest.mark.asyncio
async def test_disabled_grant_is_denied() -> None:
    store, directory = _directory()
    store.grant("t-1", "crm", is_enabled=False)
    decision = await check_entitlement(directory, tenant_id="t-1", application=_crm(store), now=NOW)
    assert decision == EntitlementDenied(DENIED_GRANT_DISABLED)


@pytest.mark.asyncio
async def test_past_expiry_is_expired() -> None:
    store, directory = _directory()
    expired_at = NOW - timedelta(days=1)
    store.grant("t-1", "crm", expires_at=expired_at)

    decision = await check_entitlement(directory, tenant_id="t-1", application=_crm(store), now=NOW)

    assert decision == EntitlementExpired(expired_at)
    with pytest.raises(EntitlementExpiredError) as exc:
        require_entitlement(decision, tenant_id="t-1", app_code="crm")
    assert exc.value.code == "ENTITLEMENT_EXPIRED"


@pytest.mark.asyncio
async def test_naive_expiry_is_treated_as_utc() -> None:
    store, directory = _directory()
    store.grant("t-1", "crm", expires_at=datetime(2026, 3, 2))
    decision = await check_entitlement(directory, tenant_id="t-1", application=_crm(store), now=NOW)
    assert isinstance(decision, EntitlementAllowed)


@pytest.mark.asyncio
async def test_inactive_application_is_rejected() -> None:
    _, directory = _directory()
    with pytest.raises(UnknownApplicationError):
        await require_active_application(directory, "legacy")
    with pytest.raises(UnknownApplicationError):
        await require_active_application(directory, "nope")
    application = await require_active_application(directory, "crm")
    assert application.app_code == "crm"


@pytest.mark.asyncio
async def test_tenant_resolves_by_id_or_alias() -> None:
    _, directory = _directory()
    assert await resolve_tenant(directory, "t-1") == "t-1"
    assert await resolve_tenant(directory, "org_1") == "t-1"
    with pytest.raises(TenantNotFoundError):
        await resolve_tenant(directory, "org_missing")


def test_normalize_app_code() -> None:
    assert normalize_app_code("  CRM ") == "crm"
    assert normalize_app_code(None) == ""
