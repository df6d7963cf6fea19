"""Tests for canonical claim events (``domain/events.py``)."""

from __future__ import annotations

import dataclasses

import pytest

from poe_registry.domain.events import (
    ALL_DOMAIN_EVENTS,
    WRITE_OWNERSHIP,
    ClaimCreated,
    ClaimRevoked,
    ClaimTransfered,
    DomainEvent,
)


class TestImmutability:
    def test_frozen(self):
        event = ClaimCreated(who="alice", proof=b"abc")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.who = "bob"  # type: ignore[misc]

    def test_unique_ids(self):
        a = ClaimRevoked(who="alice", proof=b"abc")
        b = ClaimRevoked(who="alice", proof=b"abc")
        assert a.event_id != b.event_id

    def test_timestamp_is_utc(self):
        event = ClaimCreated()
        assert event.timestamp.tzinfo is not None


class TestOwnership:
    def test_every_claim_event_owned_by_claims(self):
        for cls in (ClaimCreated, ClaimTransfered, ClaimRevoked):
            assert WRITE_OWNERSHIP[cls] == "claims"

    def test_all_events_are_domain_events(self):
        assert len(ALL_DOMAIN_EVENTS) == 3
        for cls in ALL_DOMAIN_EVENTS:
            assert issubclass(cls, DomainEvent)


class TestRendering:
    def test_created(self):
        assert str(ClaimCreated(who="alice", proof=b"\x01\xff")) == (
            "ClaimCreated(alice, 0x01ff)"
        )

    def test_transfered(self):
        event = ClaimTransfered(sender="alice", dest="carol", proof=b"abc")
        assert str(event) == "ClaimTransfered(alice, carol, 0x616263)"

    def test_revoked(self):
        assert str(ClaimRevoked(who="carol", proof=b"")) == "ClaimRevoked(carol, 0x)"
