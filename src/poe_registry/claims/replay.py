"""Rebuild registry state from the claim event log."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Iterable

from poe_registry.core.errors import ClaimError, RegistryCorruptionError
from poe_registry.core.ids import proof_to_hex
from poe_registry.core.models import ProofRecord
from poe_registry.domain.events import (
    ClaimCreated,
    ClaimRevoked,
    ClaimTransfered,
    DomainEvent,
)
from poe_registry.storage.proof_store import InMemoryProofStore

logger = logging.getLogger(__name__)


def apply_event(store: InMemoryProofStore, event: DomainEvent) -> None:
    """Apply one claim event to *store*.  Non-claim events are ignored.

    The log only ever holds events for transitions that succeeded, so an
    event that does not fit the current state means the log is corrupt.
    """
    try:
        if isinstance(event, ClaimCreated):
            store.insert(
                event.proof,
                ProofRecord(owner=event.who, created_at=event.created_at),
            )
        elif isinstance(event, ClaimTransfered):
            store.set_owner(event.proof, event.dest)
        elif isinstance(event, ClaimRevoked):
            store.remove(event.proof)
    except ClaimError as exc:
        raise RegistryCorruptionError(
            f"Event {event.event_id} does not apply to "
            f"{proof_to_hex(event.proof)}: {exc.name}"
        ) from exc


def rebuild_store(
    events: Iterable[DomainEvent],
    store: InMemoryProofStore | None = None,
) -> InMemoryProofStore:
    """Fold *events* (in log order) into a proof store."""
    store = store if store is not None else InMemoryProofStore()
    count = 0
    for event in events:
        apply_event(store, event)
        count += 1
    logger.debug("Replayed %d events into %d records", count, len(store))
    return store


async def rebuild_store_async(
    events: AsyncIterable[DomainEvent],
    store: InMemoryProofStore | None = None,
) -> InMemoryProofStore:
    """Async variant of ``rebuild_store`` for ``IEventStore.replay()``."""
    store = store if store is not None else InMemoryProofStore()
    async for event in events:
        apply_event(store, event)
    return store
