from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query

from tenantsync.apps.api.deps import get_bootstrap_service
from tenantsync.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from tenantsync.apps.api.schemas import (
    CreditConfigsResponse,
    EntityCreditsResponse,
    RolesResponse,
    credit_config_out,
    entity_credit_out,
    role_out,
)
from tenantsync.services.bootstrap.service import BootstrapService


# Administrative per-collection views; each runs the same fetcher the bootstrap uses.
router = APIRouter(prefix="/tenants", tags=["inspection"], responses=DEFAULT_ERROR_RESPONSES)


@router.get("/{tenant_ref}/roles", response_model=RolesResponse)
async def list_roles(
    tenant_ref: str = Path(min_length=1, max_length=255),
    app_code: str = Query(min_length=1, max_length=64),
    service: BootstrapService = Depends(get_bootstrap_service),
) -> RolesResponse:
    tenant_id, resolved_app, roles = await service.inspect_roles(tenant_ref, app_code)
    return RolesResponse(tenant_id=tenant_id, app_code=resolved_app, roles=[role_out(role) for role in roles])


@router.get("/{tenant_ref}/credit-configs", response_model=CreditConfigsResponse)
async def list_credit_configs(
    tenant_ref: str = Path(min_length=1, max_length=255),
    app_code: str = Query(min_length=1, max_length=64),
    service: BootstrapService = Depends(get_bootstrap_service),
) -> CreditConfigsResponse:
    tenant_id, resolved_app, costs = await service.inspect_credit_configs(tenant_ref, app_code)
    return CreditConfigsResponse(
        tenant_id=tenant_id,
        app_code=resolved_app,
        credit_configs=[credit_config_out(cost) for cost in costs],
    )


@router.get("/{tenant_ref}/entity-credits", response_model=EntityCreditsResponse)
async def list_entity_credits(
    tenant_ref: str = Path(min_length=1, max_length=255),
    app_code: str = Query(min_length=1, max_length=64),
    service: BootstrapService = Depends(get_bootstrap_service),
) -> EntityCreditsResponse:
    tenant_id, resolved_app, credits = await service.inspect_entity_credits(tenant_ref, app_code)
    return EntityCreditsResponse(
        tenant_id=tenant_id,
        app_code=resolved_app,
        entity_credits=[entity_credit_out(credit) for credit in credits],
    )
