from __future__ import annotations

from dataclasses import dataclass
import threading

from tenantsync.domain.catalog import OperationCatalog


@dataclass(frozen=True)
class SkeletonEntry:
    operation_code: str
    operation_name: str


class SkeletonCache:
    """Memoized, sorted flattening of the operation catalog per application.

    Entries are built on first access and kept for the life of the instance;
    the catalog is load-time constant so nothing is ever invalidated.
    """

    def __init__(self, catalog: OperationCatalog) -> None:
        self._catalog = catalog
        self._entries: dict[str, tuple[SkeletonEntry, ...]] = {}
        self._lock = threading.Lock()

    def get_skeleton(self, app_code: str) -> tuple[SkeletonEntry, ...]:
        # Populated keys are read without taking the lock.
        cached = self._entries.get(app_code)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._entries.get(app_code)
            if cached is not None:
                return cached
            entries = tuple(
                sorted(
                    (
                        SkeletonEntry(operation.qualified_code, operation.display_name)
                        for operation in self._catalog.iter_operations(app_code)
                    ),
                    key=lambda entry: entry.operation_code,
                )
            )
            self._entries[app_code] = entries
            return entries

    def cached_app_codes(self) -> list[str]:
        return sorted(self._entries)
