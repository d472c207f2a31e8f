from __future__ import annotations

from fastapi import Request

from tenantsync.core.config import get_settings
from tenantsync.domain.catalog import load_catalog
from tenantsync.persistence.db import SessionLocal
from tenantsync.persistence.store import SqlBootstrapStore
from tenantsync.services.bootstrap.service import BootstrapService
from tenantsync.services.catalog_cache import SkeletonCache


def build_bootstrap_service() -> BootstrapService:
    # Load the catalog once per process; the skeleton cache lives as long as the service.
    settings = get_settings()
    catalog = load_catalog(settings.catalog_path)
    return BootstrapService(
        store=SqlBootstrapStore(SessionLocal, settings=settings),
        skeleton_cache=SkeletonCache(catalog),
        settings=settings,
    )


def get_bootstrap_service(request: Request) -> BootstrapService:
    return request.app.state.bootstrap_service
