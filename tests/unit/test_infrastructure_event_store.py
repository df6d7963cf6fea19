"""Tests for the event store (``infrastructure/event_store.py``).

Covers:
- InMemoryEventStore: append, read, replay, idempotency, correlation.
- JsonFileEventStore: append, read, replay, idempotency, persistence,
  bytes/datetime restoration, unknown event types, malformed lines
  and interrupted appends.
"""

from __future__ import annotations

import json

import pytest

from poe_registry.core.errors import RegistryCorruptionError
from poe_registry.domain.events import (
    ClaimCreated,
    ClaimRevoked,
    ClaimTransfered,
)
from poe_registry.infrastructure.event_store import (
    InMemoryEventStore,
    JsonFileEventStore,
)


def _created(event_id: str = "", **kw) -> ClaimCreated:
    defaults = dict(source="claims", who="alice", proof=b"\x00\xffabc", created_at=4, block=4)
    defaults.update(kw)
    if event_id:
        defaults["event_id"] = event_id
    return ClaimCreated(**defaults)


def _transfered(**kw) -> ClaimTransfered:
    defaults = dict(source="claims", sender="alice", dest="bob", proof=b"\x00\xffabc", block=5)
    defaults.update(kw)
    return ClaimTransfered(**defaults)


async def _collect(aiter) -> list:
    return [e async for e in aiter]


# ===========================================================================
# InMemoryEventStore
# ===========================================================================

class TestInMemoryEventStore:
    @pytest.fixture
    def mem(self) -> InMemoryEventStore:
        return InMemoryEventStore()

    @pytest.mark.asyncio
    async def test_append_and_read(self, mem: InMemoryEventStore):
        event = _created()
        await mem.append(event)
        assert await mem.read() == [event]

    @pytest.mark.asyncio
    async def test_idempotent(self, mem: InMemoryEventStore):
        event = _created(event_id="e1")
        await mem.append(event)
        await mem.append(event)
        assert len(mem) == 1

    @pytest.mark.asyncio
    async def test_filters(self, mem: InMemoryEventStore):
        a = _created(correlation_id="blk-1")
        b = _transfered(correlation_id="blk-2")
        await mem.append(a)
        await mem.append(b)

        assert await mem.read(event_type=ClaimTransfered) == [b]
        assert await mem.read(correlation_id="blk-1") == [a]
        assert await mem.read(after_sequence=1) == [b]
        assert await mem.read(limit=1) == [a]

    @pytest.mark.asyncio
    async def test_replay_from_block(self, mem: InMemoryEventStore):
        await mem.append(_created())
        later = _transfered(block=9)
        await mem.append(later)

        assert await _collect(mem.replay(from_block=5)) == [later]

    @pytest.mark.asyncio
    async def test_clear(self, mem: InMemoryEventStore):
        await mem.append(_created())
        mem.clear()
        assert len(mem) == 0


# ===========================================================================
# JsonFileEventStore
# ===========================================================================

class TestJsonFileEventStore:
    @pytest.mark.asyncio
    async def test_roundtrip_restores_types(self, tmp_path):
        path = tmp_path / "events.jsonl"
        event = _created()
        await JsonFileEventStore(path).append(event)

        (restored,) = await JsonFileEventStore(path).read()
        assert restored == event
        assert isinstance(restored.proof, bytes)

    @pytest.mark.asyncio
    async def test_proof_written_as_hex(self, tmp_path):
        path = tmp_path / "events.jsonl"
        await JsonFileEventStore(path).append(_created())

        line = json.loads(path.read_text().splitlines()[0])
        assert line["proof"] == "0x00ff616263"
        assert line["__event_type__"] == "ClaimCreated"

    @pytest.mark.asyncio
    async def test_idempotent_across_instances(self, tmp_path):
        path = tmp_path / "events.jsonl"
        event = _created(event_id="e1")
        await JsonFileEventStore(path).append(event)
        reopened = JsonFileEventStore(path)
        await reopened.append(event)

        assert len(reopened) == 1
        assert len(path.read_text().splitlines()) == 1

    @pytest.mark.asyncio
    async def test_append_order_and_replay(self, tmp_path):
        store = JsonFileEventStore(tmp_path / "nested" / "events.jsonl")
        events = [_created(), _transfered(), ClaimRevoked(source="claims", who="bob", proof=b"\x00\xffabc", block=6)]
        for event in events:
            await store.append(event)

        assert await store.read() == events
        assert await _collect(store.replay(event_type=ClaimRevoked)) == events[2:]
        assert await store.read(after_sequence=2) == events[2:]

    @pytest.mark.asyncio
    async def test_skips_unknown_types_and_blank_lines(self, tmp_path):
        path = tmp_path / "events.jsonl"
        event = _created()
        await JsonFileEventStore(path).append(event)
        with path.open("a") as f:
            f.write('{"__event_type__": "SomethingNew", "event_id": "x"}\n')
            f.write("\n")

        assert await JsonFileEventStore(path).read() == [event]

    @pytest.mark.asyncio
    async def test_malformed_line_is_corruption(self, tmp_path):
        path = tmp_path / "events.jsonl"
        store = JsonFileEventStore(path)
        await store.append(_created())
        with path.open("a") as f:
            f.write("not json\n")
        await store.append(_transfered())

        with pytest.raises(RegistryCorruptionError, match="events.jsonl:2"):
            await store.read()
        with pytest.raises(RegistryCorruptionError):
            JsonFileEventStore(path)

    def test_non_object_line_is_corruption(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text("[1, 2]\n")
        with pytest.raises(RegistryCorruptionError):
            JsonFileEventStore(path)

    @pytest.mark.asyncio
    async def test_interrupted_append_cut_on_open(self, tmp_path):
        path = tmp_path / "events.jsonl"
        first = _created(event_id="e1")
        torn = _created(event_id="e2", proof=b"b")
        store = JsonFileEventStore(path)
        await store.append(first)
        await store.append(torn)
        path.write_text(path.read_text()[:-20])

        reopened = JsonFileEventStore(path)
        assert path.read_text().endswith("\n")
        assert len(path.read_text().splitlines()) == 1
        assert len(reopened) == 1

        revoked = ClaimRevoked(source="claims", who="alice", proof=first.proof, block=5)
        await reopened.append(revoked)

        assert await JsonFileEventStore(path).read() == [first, revoked]

    def test_complete_log_left_alone(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text("")
        JsonFileEventStore(path)
        assert path.read_text() == ""

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileEventStore(tmp_path / "absent.jsonl")
        assert await store.read() == []
        assert await _collect(store.replay()) == []
