"""Shared fixtures for the poe-registry test suite."""

from __future__ import annotations

import pytest

from poe_registry.claims.service import ClaimService
from poe_registry.core.clock import BlockClock
from poe_registry.infrastructure.event_bus import InMemoryEventBus
from poe_registry.infrastructure.event_store import InMemoryEventStore
from poe_registry.storage.proof_store import InMemoryProofStore


# ---------------------------------------------------------------------------
# Registry parts
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> BlockClock:
    """Block clock starting at block 10."""
    return BlockClock(genesis=10)


@pytest.fixture
def store() -> InMemoryProofStore:
    return InMemoryProofStore()


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def bus(event_store: InMemoryEventStore) -> InMemoryEventBus:
    return InMemoryEventBus(event_store=event_store)


@pytest.fixture
def service(
    store: InMemoryProofStore,
    bus: InMemoryEventBus,
    clock: BlockClock,
) -> ClaimService:
    return ClaimService(store, bus, clock, max_bytes_in_hash=64)


@pytest.fixture
def proof() -> bytes:
    return b"abc"
