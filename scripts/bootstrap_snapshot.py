from __future__ import annotations

import argparse
import asyncio
import json
import sys

from tenantsync.apps.api.deps import build_bootstrap_service
from tenantsync.apps.api.schemas import bootstrap_response
from tenantsync.core.config import get_settings
from tenantsync.core.errors import TenantSyncError
from tenantsync.core.logging import configure_logging


async def _run_bootstrap(tenant_ref: str, app_code: str) -> int:
    # Assemble the same payload the API returns and print it for operators.
    service = build_bootstrap_service()
    try:
        result = await service.assemble_bootstrap(tenant_ref, app_code)
    except TenantSyncError as exc:
        print(f"bootstrap failed code={exc.code} message={exc.message}", file=sys.stderr)
        return 2 if exc.status_code < 500 else 1
    payload = bootstrap_response(result).model_dump(by_alias=True, mode="json")
    print(json.dumps(payload, indent=2, sort_keys=False))
    return 0


def main() -> int:
    # Parse CLI flags for a one-off bootstrap snapshot.
    configure_logging()
    parser = argparse.ArgumentParser(description="Assemble a tenant bootstrap snapshot")
    parser.add_argument("--tenant", required=True, help="Tenant id or external organization alias")
    parser.add_argument("--app-code", default=get_settings().bootstrap_default_app_code)
    args = parser.parse_args()
    return asyncio.run(_run_bootstrap(args.tenant, args.app_code))


if __name__ == "__main__":
    raise SystemExit(main())
