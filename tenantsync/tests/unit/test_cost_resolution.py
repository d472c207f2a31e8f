from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any

import pytest

from tenantsync.services.catalog_cache import SkeletonCache, SkeletonEntry
from tenantsync.services.costs import (
    DEFAULT_UNIT,
    SCOPE_DEFAULT,
    SCOPE_GLOBAL,
    SCOPE_TENANT,
    merge_cost_overrides,
    resolve_costs,
)
from tenantsync.tests.utils.memory_store import MemoryBootstrapStore, MemorySnapshotReader


SKELETON = (
    SkeletonEntry("crm.leads.create", "Lead Management - Create Leads"),
    SkeletonEntry("crm.leads.export", "Lead Management - Export Leads"),
    SkeletonEntry("crm.leads.read", "Lead Management - View Leads"),
)


@dataclass
class Row:
    config_id: str
    operation_code: str
    credit_cost: Any
    tenant_id: str | None = None
    operation_name: str | None = None
    unit: str | None = None
    is_global: bool = True


def _by_code(resolved):
    return {cost.operation_code: cost for cost in resolved}


def test_tenant_override_beats_global() -> None:
    rows = [
        Row("g-1", "crm.leads.export", 2),
        Row("t-1", "crm.leads.export", 0, tenant_id="T1", is_global=False),
    ]
    resolved = _by_code(merge_cost_overrides(SKELETON, rows, tenant_id="T1"))
    export = resolved["crm.leads.export"]
    assert export.credit_cost == Decimal("0")
    assert export.scope == SCOPE_TENANT
    assert export.config_id == "t-1"
    assert export.is_global is False


def test_tenant_override_wins_regardless_of_row_order() -> None:
    rows = [
        Row("t-1", "crm.leads.export", "0.5", tenant_id="T1", is_global=False),
        Row("g-1", "crm.leads.export", 2),
    ]
    resolved = _by_code(merge_cost_overrides(SKELETON, rows, tenant_id="T1"))
    assert resolved["crm.leads.export"].credit_cost == Decimal("0.5")


def test_global_used_when_no_tenant_row() -> None:
    resolved = _by_code(merge_cost_overrides(SKELETON, [Row("g-1", "crm.leads.read", "1.25", unit="call")]))
    read = resolved["crm.leads.read"]
    assert read.scope == SCOPE_GLOBAL
    assert read.credit_cost == Decimal("1.25")
    assert read.unit == "call"
    assert read.is_global is True


def test_missing_rows_synthesize_zero_cost_default() -> None:
    resolved = merge_cost_overrides(SKELETON, [])
    assert [cost.operation_code for cost in resolved] == [entry.operation_code for entry in SKELETON]
    for cost, entry in zip(resolved, SKELETON):
        assert cost.scope == SCOPE_DEFAULT
        assert cost.credit_cost == Decimal("0")
        assert cost.unit == DEFAULT_UNIT
        assert cost.config_id is None
        assert cost.operation_name == entry.operation_name


def test_duplicate_globals_first_write_wins(caplog: pytest.LogCaptureFixture) -> None:
    rows = [Row("g-1", "crm.leads.read", 3), Row("g-2", "crm.leads.read", 7)]
    with caplog.at_level(logging.WARNING, logger="tenantsync.services.costs.resolution"):
        resolved = _by_code(merge_cost_overrides(SKELETON, rows))
    assert resolved["crm.leads.read"].config_id == "g-1"
    assert "cost_config_duplicate" in caplog.text


def test_duplicate_tenant_rows_last_write_wins(caplog: pytest.LogCaptureFixture) -> None:
    rows = [
        Row("g-1", "crm.leads.read", 3),
        Row("t-1", "crm.leads.read", 1, tenant_id="T1", is_global=False),
        Row("t-2", "crm.leads.read", "2.5", tenant_id="T1", is_global=False),
    ]
    with caplog.at_level(logging.WARNING, logger="tenantsync.services.costs.resolution"):
        resolved = _by_code(merge_cost_overrides(SKELETON, rows, tenant_id="T1"))
    read = resolved["crm.leads.read"]
    assert read.config_id == "t-2"
    assert read.credit_cost == Decimal("2.5")
    assert read.scope == SCOPE_TENANT
    duplicates = [r.getMessage() for r in caplog.records if "cost_config_duplicate" in r.getMessage()]
    assert duplicates == [
        f"cost_config_duplicate scope={SCOPE_TENANT} operation_code=crm.leads.read config_id=t-2"
    ]


def test_rows_outside_skeleton_are_ignored(caplog: pytest.LogCaptureFixture) -> None:
    rows = [Row("g-1", "crm.leads.teleport", 9)]
    with caplog.at_level(logging.WARNING, logger="tenantsync.services.costs.resolution"):
        resolved = merge_cost_overrides(SKELETON, rows)
    assert len(resolved) == len(SKELETON)
    assert "cost_config_unknown_operation" in caplog.text


def test_foreign_tenant_rows_are_skipped() -> None:
    rows = [Row("t-x", "crm.leads.read", 5, tenant_id="OTHER", is_global=False)]
    resolved = _by_code(merge_cost_overrides(SKELETON, rows, tenant_id="T1"))
    assert resolved["crm.leads.read"].scope == SCOPE_DEFAULT


@pytest.mark.asyncio
async def test_resolve_costs_reads_scoped_rows(skeleton_cache: SkeletonCache) -> None:
    store = MemoryBootstrapStore()
    store.add_cost_config("crm.leads.export", 2)
    store.add_cost_config("crm.leads.export", 0, tenant_id="T1")
    store.add_cost_config("crm.leads.export", 9, tenant_id="T2")
    store.add_cost_config("hr.payroll.process", 4)

    resolved = await resolve_costs(
        "crm", "T1", reader=MemorySnapshotReader(store), skeleton_cache=skeleton_cache
    )

    assert len(resolved) == len(skeleton_cache.get_skeleton("crm"))
    export = _by_code(resolved)["crm.leads.export"]
    assert export.credit_cost == Decimal("0")
    assert export.scope == SCOPE_TENANT
    assert store.calls["list_cost_configs"] == 1
