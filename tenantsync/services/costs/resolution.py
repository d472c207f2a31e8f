from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import TYPE_CHECKING, Any, Iterable, Protocol, Sequence

from tenantsync.services.catalog_cache import SkeletonCache, SkeletonEntry

if TYPE_CHECKING:
    from tenantsync.services.bootstrap.store import SnapshotReader


logger = logging.getLogger(__name__)

SCOPE_TENANT = "tenant-override"
SCOPE_GLOBAL = "global-override"
SCOPE_DEFAULT = "default"

DEFAULT_UNIT = "operation"


class CostConfigRow(Protocol):
    config_id: str
    tenant_id: str | None
    operation_code: str
    operation_name: str | None
    credit_cost: Any
    unit: str | None
    is_global: bool


@dataclass(frozen=True)
class ResolvedCost:
    # Effective cost for one catalog operation after the override cascade.
    config_id: str | None
    operation_code: str
    operation_name: str
    credit_cost: Decimal
    unit: str
    scope: str
    is_global: bool


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def merge_cost_overrides(
    skeleton: Sequence[SkeletonEntry],
    rows: Iterable[CostConfigRow],
    *,
    tenant_id: str | None = None,
) -> list[ResolvedCost]:
    """Resolve one cost per skeleton entry: tenant > global > default(0).

    Global rows seed the map first-write-wins; tenant rows then overwrite
    unconditionally. Duplicates are logged as data-quality anomalies and never
    raised. Output follows skeleton order.
    """
    rows = list(rows)
    merged: dict[str, tuple[CostConfigRow, str]] = {}

    for row in rows:
        if not row.is_global:
            continue
        if row.operation_code in merged:
            logger.warning(
                "cost_config_duplicate scope=%s operation_code=%s kept=%s dropped=%s",
                SCOPE_GLOBAL,
                row.operation_code,
                merged[row.operation_code][0].config_id,
                row.config_id,
            )
            continue
        merged[row.operation_code] = (row, SCOPE_GLOBAL)

    tenant_seen: set[str] = set()
    for row in rows:
        if row.is_global:
            continue
        if tenant_id is not None and row.tenant_id != tenant_id:
            logger.warning(
                "cost_config_foreign_tenant operation_code=%s config_id=%s",
                row.operation_code,
                row.config_id,
            )
            continue
        if row.operation_code in tenant_seen:
            logger.warning(
                "cost_config_duplicate scope=%s operation_code=%s config_id=%s",
                SCOPE_TENANT,
                row.operation_code,
                row.config_id,
            )
        tenant_seen.add(row.operation_code)
        merged[row.operation_code] = (row, SCOPE_TENANT)

    known_codes = {entry.operation_code for entry in skeleton}
    for operation_code in sorted(set(merged) - known_codes):
        logger.warning("cost_config_unknown_operation operation_code=%s", operation_code)

    resolved: list[ResolvedCost] = []
    for entry in skeleton:
        match = merged.get(entry.operation_code)
        if match is None:
            resolved.append(
                ResolvedCost(
                    config_id=None,
                    operation_code=entry.operation_code,
                    operation_name=entry.operation_name,
                    credit_cost=Decimal("0"),
                    unit=DEFAULT_UNIT,
                    scope=SCOPE_DEFAULT,
                    is_global=True,
                )
            )
            continue
        row, scope = match
        resolved.append(
            ResolvedCost(
                config_id=row.config_id,
                operation_code=entry.operation_code,
                operation_name=row.operation_name or entry.operation_name,
                credit_cost=_to_decimal(row.credit_cost),
                unit=row.unit or DEFAULT_UNIT,
                scope=scope,
                is_global=scope == SCOPE_GLOBAL,
            )
        )
    return resolved


async def resolve_costs(
    app_code: str,
    tenant_id: str,
    *,
    reader: "SnapshotReader",
    skeleton_cache: SkeletonCache,
) -> list[ResolvedCost]:
    # The skeleton is static; only the override rows are read per call.
    skeleton = skeleton_cache.get_skeleton(app_code)
    rows = await reader.list_cost_configs(tenant_id=tenant_id, app_code=app_code)
    return merge_cost_overrides(skeleton, rows, tenant_id=tenant_id)
