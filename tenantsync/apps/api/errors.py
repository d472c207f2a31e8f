from __future__ import annotations

import logging
from typing import Any, Mapping

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenantsync.apps.api.response import error_response
from tenantsync.core.errors import TenantSyncError


logger = logging.getLogger(__name__)

# Fallback codes for framework-raised errors that carry no domain code.
_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    500: "INTERNAL_ERROR",
}


def _json_error(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=status_code, headers=dict(headers) if headers else None)


async def tenant_sync_exception_handler(request: Request, exc: TenantSyncError) -> JSONResponse:
    # Domain errors carry their own status and stable code.
    if exc.status_code >= 500:
        logger.error("request_failed path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    return _json_error(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=jsonable_encoder(exc.details) if exc.details else None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Covers both FastAPI's HTTPException and Starlette routing errors (404/405).
    detail = exc.detail
    if isinstance(detail, dict):
        return _json_error(
            request,
            status_code=exc.status_code,
            code=str(detail.get("code") or _STATUS_CODES.get(exc.status_code, "UNKNOWN_ERROR")),
            message=str(detail.get("message") or "Request failed"),
            details={k: v for k, v in detail.items() if k not in {"code", "message"}} or None,
            headers=exc.headers,
        )
    return _json_error(
        request,
        status_code=exc.status_code,
        code=_STATUS_CODES.get(exc.status_code, "UNKNOWN_ERROR"),
        message=detail if isinstance(detail, str) else "Request failed",
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _json_error(
        request,
        status_code=422,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak stack traces to callers.
    logger.exception("request_unhandled_error path=%s", request.url.path)
    return _json_error(request, status_code=500, code="INTERNAL_ERROR", message="Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenantSyncError, tenant_sync_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
