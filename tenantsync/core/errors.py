from __future__ import annotations

from datetime import datetime
from typing import Any


class TenantSyncError(Exception):
    """Base error for tenantsync."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class CatalogLoadError(TenantSyncError):
    """Operation catalog file missing or invalid."""

    code = "CATALOG_LOAD_FAILED"


class PreconditionError(TenantSyncError):
    """Request rejected before any snapshot transaction is opened."""

    status_code = 400
    code = "PRECONDITION_FAILED"


class UnknownApplicationError(PreconditionError):
    """Application code is not registered or not active."""

    status_code = 400
    code = "UNKNOWN_APP_CODE"

    def __init__(self, app_code: str) -> None:
        super().__init__(
            f"Unknown or inactive appCode: {app_code}",
            details={"app_code": app_code},
        )
        self.app_code = app_code


class TenantNotFoundError(PreconditionError):
    """Tenant id or alias does not resolve."""

    status_code = 404
    code = "TENANT_NOT_FOUND"

    def __init__(self, tenant_ref: str) -> None:
        super().__init__("Tenant not found", details={"tenant": tenant_ref})
        self.tenant_ref = tenant_ref


class EntitlementDeniedError(PreconditionError):
    """Tenant holds no active grant for the application."""

    status_code = 403
    code = "ENTITLEMENT_DENIED"

    def __init__(self, tenant_id: str, app_code: str, reason: str) -> None:
        super().__init__(
            f"Tenant {tenant_id} does not have access to app: {app_code}",
            details={"tenant_id": tenant_id, "app_code": app_code, "reason": reason},
        )
        self.reason = reason


class EntitlementExpiredError(PreconditionError):
    """Tenant grant for the application is past its expiry."""

    status_code = 403
    code = "ENTITLEMENT_EXPIRED"

    def __init__(self, tenant_id: str, app_code: str, expired_at: datetime) -> None:
        super().__init__(
            f"Tenant access to {app_code} expired at {expired_at.isoformat()}",
            details={
                "tenant_id": tenant_id,
                "app_code": app_code,
                "expired_at": expired_at.isoformat(),
            },
        )
        self.expired_at = expired_at


class BootstrapAssemblyError(TenantSyncError):
    """Snapshot transaction failed as a whole."""

    status_code = 500
    code = "BOOTSTRAP_ASSEMBLY_FAILED"


class CriticalCollectionError(BootstrapAssemblyError):
    """A collection the payload cannot exist without failed to load."""

    def __init__(self, collection: str, cause: str) -> None:
        super().__init__(
            f"bootstrap.{collection} failed: {cause or 'unknown error'}",
            details={"collection": collection},
        )
        self.collection = collection


class BootstrapTimeoutError(BootstrapAssemblyError):
    """Snapshot transaction exceeded the caller deadline and was rolled back."""

    status_code = 504
    code = "BOOTSTRAP_TIMEOUT"
