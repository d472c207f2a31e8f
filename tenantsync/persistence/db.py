from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tenantsync.core.config import Settings, get_settings


def engine_options(settings: Settings) -> dict[str, Any]:
    # Bounded pools keep bootstrap bursts queued in the app rather than piling onto Postgres.
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=max(1, settings.api_db_pool_size),
        max_overflow=max(0, settings.api_db_max_overflow),
        pool_timeout=30,
        pool_recycle=1800,
    )
    if settings.api_db_statement_timeout_ms > 0:
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(settings.api_db_statement_timeout_ms)}
        }
    return options


def snapshot_execution_options(database_url: str, isolation_level: str) -> dict[str, Any]:
    # Postgres gets a read-only transaction; other dialects only take the isolation level.
    options: dict[str, Any] = {"isolation_level": isolation_level}
    if database_url.startswith("postgresql"):
        options["postgresql_readonly"] = True
    return options


settings = get_settings()
engine = create_async_engine(settings.database_url, **engine_options(settings))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
