from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantsync.core.config import Settings, get_settings
from tenantsync.persistence.db import snapshot_execution_options
from tenantsync.persistence.repos.directory import SqlDirectoryReader
from tenantsync.persistence.repos.snapshot import SqlSnapshotReader


class SqlBootstrapStore:
    """Relational implementation of the bootstrap store ports."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        *,
        settings: Settings | None = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._settings = settings or get_settings()

    @asynccontextmanager
    async def directory(self) -> AsyncIterator[SqlDirectoryReader]:
        async with self._sessionmaker() as session:
            yield SqlDirectoryReader(session)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[SqlSnapshotReader]:
        async with self._sessionmaker() as session:
            # Fix isolation before the first statement so every fetch sees one snapshot.
            await session.connection(
                execution_options=snapshot_execution_options(
                    self._settings.database_url,
                    self._settings.bootstrap_isolation_level,
                )
            )
            try:
                yield SqlSnapshotReader(session)
            finally:
                # Nothing is ever written here; always end the transaction with a rollback.
                await session.rollback()
