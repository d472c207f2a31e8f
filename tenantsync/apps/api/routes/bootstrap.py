from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Path, Query

from tenantsync.apps.api.deps import get_bootstrap_service
from tenantsync.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from tenantsync.apps.api.schemas import BootstrapRequest, BootstrapResponse, bootstrap_response
from tenantsync.core.config import get_settings
from tenantsync.services.bootstrap.service import BootstrapService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["bootstrap"], responses=DEFAULT_ERROR_RESPONSES)


@router.post("/{tenant_ref}/bootstrap", response_model=BootstrapResponse)
async def bootstrap_tenant(
    tenant_ref: str = Path(min_length=1, max_length=255),
    app_code: str | None = Query(default=None, max_length=64),
    body: BootstrapRequest | None = Body(default=None),
    service: BootstrapService = Depends(get_bootstrap_service),
) -> BootstrapResponse:
    # Body takes precedence over the query string; fall back to the configured default app.
    requested_app = (body.app_code if body else None) or app_code or get_settings().bootstrap_default_app_code
    requested_by = (body.requested_by if body else None) or "unknown"
    logger.info(
        "bootstrap_requested tenant=%s app_code=%s requested_by=%s",
        tenant_ref,
        requested_app,
        requested_by,
    )
    result = await service.assemble_bootstrap(tenant_ref, requested_app)
    return bootstrap_response(result)
