from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from tenantsync.core.errors import CriticalCollectionError, PreconditionError
from tenantsync.services.bootstrap.store import SnapshotReader
from tenantsync.services.bootstrap.types import CollectionWarning


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    # Either a value or the exception a fetcher raised, never both.
    value: T | None = None
    error: Exception | None = None


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


async def capture(fetch: Callable[[], Awaitable[T]]) -> FetchOutcome[T]:
    # Cancellation is a BaseException and deliberately passes through.
    try:
        return FetchOutcome(value=await fetch())
    except Exception as exc:
        return FetchOutcome(error=exc)


async def run_critical(collection: str, fetch: Callable[[], Awaitable[T]], *, tenant_id: str) -> T:
    """Return the fetched value or abort the snapshot with a named error."""
    outcome = await capture(fetch)
    if outcome.error is None:
        return outcome.value  # type: ignore[return-value]
    if isinstance(outcome.error, PreconditionError):
        raise outcome.error
    logger.error(
        "bootstrap_collection_failed collection=%s tenant_id=%s critical=true error=%s",
        collection,
        tenant_id,
        _describe(outcome.error),
    )
    raise CriticalCollectionError(collection, _describe(outcome.error)) from outcome.error


async def run_non_critical(
    collection: str,
    fetch: Callable[[], Awaitable[list[T]]],
    *,
    reader: SnapshotReader,
    warnings: list[CollectionWarning],
    tenant_id: str,
) -> list[T]:
    """Return the fetched list, or [] plus a warning when the fetcher fails.

    The fetch runs inside a savepoint so its failure leaves the surrounding
    snapshot transaction usable for the remaining collections.
    """

    async def _isolated() -> list[T]:
        async with reader.savepoint():
            return await fetch()

    outcome = await capture(_isolated)
    if outcome.error is None:
        return outcome.value  # type: ignore[return-value]
    message = _describe(outcome.error)
    logger.warning(
        "bootstrap_collection_failed collection=%s tenant_id=%s critical=false error=%s",
        collection,
        tenant_id,
        message,
    )
    warnings.append(CollectionWarning(collection=collection, error=message))
    return []
