"""Tests for rebuilding registry state from events (``claims/replay.py``)."""

from __future__ import annotations

import pytest

from poe_registry.claims.replay import rebuild_store, rebuild_store_async
from poe_registry.core.errors import RegistryCorruptionError
from poe_registry.core.models import ProofRecord
from poe_registry.domain.events import ClaimCreated, ClaimRevoked, ClaimTransfered


@pytest.mark.asyncio
async def test_replay_matches_live_state(service, store, event_store, clock, proof):
    await service.create_claim("alice", proof)
    clock.advance()
    await service.transfer_claim("alice", "bob", proof)
    await service.create_claim("carol", b"other")
    await service.revoke_claim("carol", b"other")

    rebuilt = await rebuild_store_async(event_store.replay())
    assert rebuilt.items() == store.items()
    assert rebuilt.get(proof) == ProofRecord(owner="bob", created_at=10)


def test_rebuild_from_list():
    events = [
        ClaimCreated(who="alice", proof=b"p", created_at=2),
        ClaimTransfered(sender="alice", dest="bob", proof=b"p"),
    ]
    store = rebuild_store(events)
    assert store.get(b"p") == ProofRecord(owner="bob", created_at=2)


def test_revoke_then_recreate():
    events = [
        ClaimCreated(who="alice", proof=b"p", created_at=2),
        ClaimRevoked(who="alice", proof=b"p"),
        ClaimCreated(who="dave", proof=b"p", created_at=8),
    ]
    assert rebuild_store(events).get(b"p") == ProofRecord(owner="dave", created_at=8)


@pytest.mark.parametrize(
    "events",
    [
        [ClaimTransfered(sender="a", dest="b", proof=b"p")],
        [ClaimRevoked(who="a", proof=b"p")],
        [
            ClaimCreated(who="a", proof=b"p", created_at=1),
            ClaimCreated(who="b", proof=b"p", created_at=2),
        ],
    ],
)
def test_inconsistent_log_is_corruption(events):
    with pytest.raises(RegistryCorruptionError):
        rebuild_store(events)
