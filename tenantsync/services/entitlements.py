from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any

from tenantsync.core.errors import (
    EntitlementDeniedError,
    EntitlementExpiredError,
    TenantNotFoundError,
    UnknownApplicationError,
)
from tenantsync.domain.models import Application
from tenantsync.services.bootstrap.store import DirectoryReader


logger = logging.getLogger(__name__)

APPLICATION_STATUS_ACTIVE = "active"

DENIED_NO_GRANT = "no_grant"
DENIED_GRANT_DISABLED = "grant_disabled"


@dataclass(frozen=True)
class EntitlementAllowed:
    subscription_tier: str | None = None
    enabled_modules: list[str] = field(default_factory=list)
    expires_at: datetime | None = None


@dataclass(frozen=True)
class EntitlementDenied:
    reason: str


@dataclass(frozen=True)
class EntitlementExpired:
    expired_at: datetime


EntitlementDecision = EntitlementAllowed | EntitlementDenied | EntitlementExpired


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Grant timestamps written without a zone are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _enabled_modules(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(module) for module in raw]


def normalize_app_code(app_code: str | None) -> str:
    return (app_code or "").strip().lower()


async def require_active_application(directory: DirectoryReader, app_code: str) -> Application:
    # Reject unknown or inactive codes before any snapshot is opened.
    application = await directory.get_application(app_code) if app_code else None
    if application is None or application.status != APPLICATION_STATUS_ACTIVE:
        raise UnknownApplicationError(app_code)
    return application


async def resolve_tenant(directory: DirectoryReader, tenant_ref: str) -> str:
    tenant_id = await directory.resolve_tenant_id(tenant_ref)
    if tenant_id is None:
        raise TenantNotFoundError(tenant_ref)
    return tenant_id


async def check_entitlement(
    directory: DirectoryReader,
    *,
    tenant_id: str,
    application: Application,
    now: datetime | None = None,
) -> EntitlementDecision:
    """Decide whether the tenant may use the application right now.

    Runs outside the snapshot transaction; grants change rarely, so a brief
    staleness window relative to the snapshot is acceptable.
    """
    grant = await directory.get_grant(tenant_id=tenant_id, app_id=application.app_id)
    if grant is None:
        return EntitlementDenied(DENIED_NO_GRANT)
    if not grant.is_enabled:
        return EntitlementDenied(DENIED_GRANT_DISABLED)
    if grant.expires_at is not None:
        expires_at = _as_utc(grant.expires_at)
        if expires_at < (now or _utc_now()):
            return EntitlementExpired(expires_at)
    return EntitlementAllowed(
        subscription_tier=grant.subscription_tier,
        enabled_modules=_enabled_modules(grant.enabled_modules),
        expires_at=grant.expires_at,
    )


def require_entitlement(
    decision: EntitlementDecision,
    *,
    tenant_id: str,
    app_code: str,
) -> EntitlementAllowed:
    # Translate a negative decision into the matching precondition error.
    if isinstance(decision, EntitlementAllowed):
        return decision
    if isinstance(decision, EntitlementExpired):
        logger.info(
            "entitlement_expired tenant_id=%s app_code=%s expired_at=%s",
            tenant_id,
            app_code,
            decision.expired_at.isoformat(),
        )
        raise EntitlementExpiredError(tenant_id, app_code, decision.expired_at)
    logger.info(
        "entitlement_denied tenant_id=%s app_code=%s reason=%s",
        tenant_id,
        app_code,
        decision.reason,
    )
    raise EntitlementDeniedError(tenant_id, app_code, decision.reason)
