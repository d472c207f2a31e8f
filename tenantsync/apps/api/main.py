from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Request

from tenantsync.apps.api.deps import build_bootstrap_service
from tenantsync.apps.api.errors import register_exception_handlers
from tenantsync.apps.api.response import API_VERSION, REQUEST_ID_HEADER
from tenantsync.apps.api.routes.bootstrap import router as bootstrap_router
from tenantsync.apps.api.routes.health import router as health_router
from tenantsync.apps.api.routes.inspection import router as inspection_router
from tenantsync.core.config import get_settings
from tenantsync.core.logging import configure_logging
from tenantsync.services.bootstrap.service import BootstrapService


def create_app(bootstrap_service: BootstrapService | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title=f"{get_settings().app_name} API")
    # One service, and so one skeleton cache, per app instance.
    app.state.bootstrap_service = bootstrap_service or build_bootstrap_service()

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):  # type: ignore[override]
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        response = await call_next(request)
        response.headers.setdefault(REQUEST_ID_HEADER, request.state.request_id)
        return response

    register_exception_handlers(app)
    for router in (health_router, bootstrap_router, inspection_router):
        app.include_router(router, prefix=f"/{API_VERSION}")
    return app


app = create_app()
