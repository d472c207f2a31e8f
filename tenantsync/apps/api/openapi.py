from __future__ import annotations

from typing import Any

from tenantsync.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    payload: dict[str, Any] = {
        "success": False,
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, example: dict[str, Any]) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: _response(
        "Unknown or inactive application code",
        _error_example(
            code="UNKNOWN_APP_CODE",
            message="Unknown or inactive appCode: payroll",
            details={"app_code": "payroll"},
        ),
    ),
    403: _response(
        "Entitlement denied or expired",
        _error_example(
            code="ENTITLEMENT_EXPIRED",
            message="Tenant access to crm expired at 2026-01-01T00:00:00+00:00",
            details={"tenant_id": "t-1", "app_code": "crm", "expired_at": "2026-01-01T00:00:00+00:00"},
        ),
    ),
    404: _response(
        "Tenant not found",
        _error_example(code="TENANT_NOT_FOUND", message="Tenant not found", details={"tenant": "org_123"}),
    ),
    422: _response(
        "Validation error",
        _error_example(code="REQUEST_VALIDATION_ERROR", message="Validation error"),
    ),
    500: _response(
        "Snapshot assembly failed",
        _error_example(
            code="BOOTSTRAP_ASSEMBLY_FAILED",
            message="bootstrap.users failed: connection reset",
            details={"collection": "users"},
        ),
    ),
    504: _response(
        "Snapshot exceeded its deadline",
        _error_example(code="BOOTSTRAP_TIMEOUT", message="Bootstrap snapshot exceeded 30.0s and was rolled back"),
    ),
}
