from __future__ import annotations

# Re-export cost resolution for centralized imports.

from tenantsync.services.costs.resolution import (
    DEFAULT_UNIT,
    SCOPE_DEFAULT,
    SCOPE_GLOBAL,
    SCOPE_TENANT,
    ResolvedCost,
    merge_cost_overrides,
    resolve_costs,
)

__all__ = [
    "DEFAULT_UNIT",
    "SCOPE_DEFAULT",
    "SCOPE_GLOBAL",
    "SCOPE_TENANT",
    "ResolvedCost",
    "merge_cost_overrides",
    "resolve_costs",
]
