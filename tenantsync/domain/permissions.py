from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedPermissionTree:
    # Top-level mapping of app_code -> module payload, as stored on the role.
    apps: dict[str, Any]


@dataclass(frozen=True)
class Unparseable:
    reason: str


PermissionPayload = ParsedPermissionTree | Unparseable


def parse_permission_tree(raw: Any) -> PermissionPayload:
    """Decode a stored role permission payload without ever raising.

    Rows written by older clients hold the tree as a JSON string rather than
    a JSONB object, so both encodings are accepted.
    """
    if raw is None or raw == "":
        return Unparseable("absent")
    value = raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            return Unparseable("invalid_json")
    if not isinstance(value, dict):
        return Unparseable(f"unexpected_type:{type(value).__name__}")
    return ParsedPermissionTree(apps=value)


def flatten_permissions(raw: Any, app_code: str) -> list[str]:
    """Return "app.module.operation" strings for one application.

    Only the sub-tree under ``app_code`` is read. Module values that are not
    lists are skipped, and duplicates are passed through unchanged.

    >>> flatten_permissions({"crm": {"leads": ["read", "create"]}, "hr": {"employees": ["read"]}}, "crm")
    ['crm.leads.read', 'crm.leads.create']
    """
    parsed = parse_permission_tree(raw)
    if isinstance(parsed, Unparseable):
        if parsed.reason != "absent":
            logger.debug("role_permissions_unparseable reason=%s", parsed.reason)
        return []
    app_tree = parsed.apps.get(app_code)
    if not isinstance(app_tree, dict):
        return []
    flat: list[str] = []
    for module_code, operations in app_tree.items():
        if not isinstance(operations, list):
            continue
        for operation in operations:
            flat.append(f"{app_code}.{module_code}.{operation}")
    return flat
