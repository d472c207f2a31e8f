from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from typing import Awaitable, Callable, TypeVar

from tenantsync.core.config import Settings, get_settings
from tenantsync.core.errors import BootstrapTimeoutError, UnknownApplicationError
from tenantsync.services.bootstrap import fetchers
from tenantsync.services.bootstrap.outcomes import run_critical, run_non_critical
from tenantsync.services.bootstrap.store import BootstrapStore, SnapshotReader
from tenantsync.services.bootstrap.types import (
    COLLECTION_CREDIT_CONFIGS,
    COLLECTION_EMPLOYEE_ASSIGNMENTS,
    COLLECTION_ENTITY_CREDITS,
    COLLECTION_ORGANIZATIONS,
    COLLECTION_ROLE_ASSIGNMENTS,
    COLLECTION_ROLES,
    COLLECTION_TENANT,
    COLLECTION_USERS,
    BootstrapCollections,
    BootstrapResult,
    BootstrapSnapshot,
    CollectionWarning,
    EntityCreditRecord,
    RoleRecord,
)
from tenantsync.services.catalog_cache import SkeletonCache
from tenantsync.services.costs.resolution import ResolvedCost
from tenantsync.services.entitlements import (
    check_entitlement,
    normalize_app_code,
    require_active_application,
    require_entitlement,
    resolve_tenant,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BootstrapService:
    """Assembles the bootstrap snapshot for one (tenant, application) pair.

    Preconditions (application, tenant, entitlement) are checked first with a
    short directory session. The eight collections are then read inside one
    snapshot transaction: tenant, organizations, users and roles are critical
    and abort the call on failure; the remaining four degrade to an empty list
    plus a warning.
    """

    def __init__(
        self,
        *,
        store: BootstrapStore,
        skeleton_cache: SkeletonCache,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._skeleton_cache = skeleton_cache
        self._settings = settings or get_settings()
        self._clock = clock or _utc_now

    async def assemble_bootstrap(self, tenant_ref: str, app_code: str | None) -> BootstrapResult:
        app_code = normalize_app_code(app_code)
        if not app_code:
            raise UnknownApplicationError(app_code)
        async with self._store.directory() as directory:
            application = await require_active_application(directory, app_code)
            tenant_id = await resolve_tenant(directory, tenant_ref)
            decision = await check_entitlement(
                directory, tenant_id=tenant_id, application=application, now=self._clock()
            )
        entitlement = require_entitlement(decision, tenant_id=tenant_id, app_code=app_code)
        snapshot = await self.assemble(tenant_id, app_code)
        return BootstrapResult(
            snapshot=snapshot,
            subscription_tier=entitlement.subscription_tier,
            enabled_modules=list(entitlement.enabled_modules),
        )

    async def assemble(self, tenant_id: str, app_code: str) -> BootstrapSnapshot:
        snapshot_at = self._clock()
        logger.info("bootstrap_started tenant_id=%s app_code=%s", tenant_id, app_code)
        warnings: list[CollectionWarning] = []
        collections = await self._with_deadline(
            self._read_collections(tenant_id, app_code, warnings),
            tenant_id=tenant_id,
            app_code=app_code,
        )
        record_counts = collections.record_counts()
        logger.info(
            "bootstrap_assembled tenant_id=%s app_code=%s record_counts=%s warnings=%d",
            tenant_id,
            app_code,
            record_counts,
            len(warnings),
        )
        return BootstrapSnapshot(
            snapshot_at=snapshot_at,
            tenant_id=tenant_id,
            app_code=app_code,
            collections=collections,
            record_counts=record_counts,
            warnings=list(warnings),
        )

    async def _read_collections(
        self,
        tenant_id: str,
        app_code: str,
        warnings: list[CollectionWarning],
    ) -> BootstrapCollections:
        async with self._store.snapshot() as reader:
            tenant = await run_critical(
                COLLECTION_TENANT,
                lambda: fetchers.fetch_tenant(reader, tenant_id),
                tenant_id=tenant_id,
            )
            organizations = await run_critical(
                COLLECTION_ORGANIZATIONS,
                lambda: fetchers.fetch_organizations(reader, tenant_id),
                tenant_id=tenant_id,
            )
            users = await run_critical(
                COLLECTION_USERS,
                lambda: fetchers.fetch_users(reader, tenant_id),
                tenant_id=tenant_id,
            )
            roles = await run_critical(
                COLLECTION_ROLES,
                lambda: fetchers.fetch_roles(reader, tenant_id, app_code),
                tenant_id=tenant_id,
            )

            def non_critical(collection: str, fetch: Callable[[], Awaitable[list[T]]]) -> Awaitable[list[T]]:
                return run_non_critical(
                    collection, fetch, reader=reader, warnings=warnings, tenant_id=tenant_id
                )

            employee_assignments = await non_critical(
                COLLECTION_EMPLOYEE_ASSIGNMENTS,
                lambda: fetchers.fetch_employee_assignments(reader, tenant_id),
            )
            role_assignments = await non_critical(
                COLLECTION_ROLE_ASSIGNMENTS,
                lambda: fetchers.fetch_role_assignments(reader, tenant_id),
            )
            credit_configs = await non_critical(
                COLLECTION_CREDIT_CONFIGS,
                lambda: self._fetch_credit_configs(reader, tenant_id, app_code),
            )
            entity_credits = await non_critical(
                COLLECTION_ENTITY_CREDITS,
                lambda: self._fetch_entity_credits(reader, tenant_id, app_code),
            )
        return BootstrapCollections(
            tenant=tenant,
            organizations=organizations,
            users=users,
            roles=roles,
            employee_assignments=employee_assignments,
            role_assignments=role_assignments,
            credit_configs=credit_configs,
            entity_credits=entity_credits,
        )

    async def _with_deadline(self, work: Awaitable[T], *, tenant_id: str, app_code: str) -> T:
        # Cancelling the work unwinds the snapshot context, which rolls the transaction back.
        timeout = self._settings.bootstrap_timeout_s
        try:
            return await asyncio.wait_for(work, timeout=timeout if timeout > 0 else None)
        except asyncio.TimeoutError as exc:
            logger.error(
                "bootstrap_timeout tenant_id=%s app_code=%s timeout_s=%s",
                tenant_id,
                app_code,
                timeout,
            )
            raise BootstrapTimeoutError(
                f"Bootstrap snapshot exceeded {timeout}s and was rolled back",
                details={"tenant_id": tenant_id, "app_code": app_code},
            ) from exc

    def _fetch_credit_configs(
        self, reader: SnapshotReader, tenant_id: str, app_code: str
    ) -> Awaitable[list[ResolvedCost]]:
        return fetchers.fetch_credit_configs(
            reader, tenant_id, app_code, skeleton_cache=self._skeleton_cache
        )

    def _fetch_entity_credits(
        self, reader: SnapshotReader, tenant_id: str, app_code: str
    ) -> Awaitable[list[EntityCreditRecord]]:
        return fetchers.fetch_entity_credits(
            reader,
            tenant_id,
            app_code,
            batch_size=self._settings.bootstrap_entity_batch_size,
        )

    # Per-collection inspection reads share the bootstrap fetchers verbatim.

    async def inspect_roles(self, tenant_ref: str, app_code: str | None) -> tuple[str, str, list[RoleRecord]]:
        return await self._inspect(
            tenant_ref,
            app_code,
            COLLECTION_ROLES,
            lambda reader, tenant_id, code: fetchers.fetch_roles(reader, tenant_id, code),
        )

    async def inspect_credit_configs(
        self, tenant_ref: str, app_code: str | None
    ) -> tuple[str, str, list[ResolvedCost]]:
        return await self._inspect(tenant_ref, app_code, COLLECTION_CREDIT_CONFIGS, self._fetch_credit_configs)

    async def inspect_entity_credits(
        self, tenant_ref: str, app_code: str | None
    ) -> tuple[str, str, list[EntityCreditRecord]]:
        return await self._inspect(tenant_ref, app_code, COLLECTION_ENTITY_CREDITS, self._fetch_entity_credits)

    async def _inspect(
        self,
        tenant_ref: str,
        app_code: str | None,
        collection: str,
        fetch: Callable[[SnapshotReader, str, str], Awaitable[list[T]]],
    ) -> tuple[str, str, list[T]]:
        app_code = normalize_app_code(app_code)
        if not app_code:
            raise UnknownApplicationError(app_code)
        async with self._store.directory() as directory:
            await require_active_application(directory, app_code)
            tenant_id = await resolve_tenant(directory, tenant_ref)

        async def _read() -> list[T]:
            async with self._store.snapshot() as reader:
                return await run_critical(
                    collection, lambda: fetch(reader, tenant_id, app_code), tenant_id=tenant_id
                )

        items = await self._with_deadline(_read(), tenant_id=tenant_id, app_code=app_code)
        return tenant_id, app_code, items
