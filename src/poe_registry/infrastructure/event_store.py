"""Append-only event store for replay, audit, and state reconstruction.

Design invariants
-----------------
1.  ``append()`` is **idempotent** on ``event.event_id`` — appending
    the same event twice is a silent no-op.
2.  ``read()`` returns events in **append order** (monotonically
    increasing sequence number).
3.  ``replay()`` yields events lazily for memory-efficient reprocessing.
4.  The store is **append-only** — events can never be deleted or
    modified.  ``clear()`` exists only for testing.

The claim registry keeps no separate snapshot: its state is the fold of
the claim events in this log (see ``claims.replay``).
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from poe_registry.core.errors import RegistryCorruptionError
from poe_registry.core.ids import proof_from_hex, proof_to_hex
from poe_registry.domain.events import DomainEvent

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON helpers (bytes / datetime safe)
# ---------------------------------------------------------------------------

class _EventEncoder(json.JSONEncoder):
    """Handles bytes and datetime serialization."""

    def default(self, o: Any) -> Any:
        if isinstance(o, bytes):
            return proof_to_hex(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def _event_to_dict(event: DomainEvent) -> dict[str, Any]:
    d = dataclasses.asdict(event)
    d["__event_type__"] = type(event).__qualname__
    return d


def _event_from_dict(
    d: dict[str, Any],
    registry: dict[str, type[DomainEvent]],
) -> DomainEvent | None:
    """Deserialize a dict back into a DomainEvent subclass.

    Returns ``None`` if the event type is unrecognized (forward compat).
    Unknown keys are dropped for the same reason.
    """
    type_name = d.pop("__event_type__", None)
    if type_name is None or type_name not in registry:
        return None
    cls = registry[type_name]

    # Annotations are strings under ``from __future__ import annotations``
    field_types = {f.name: str(f.type) for f in dataclasses.fields(cls)}

    restored: dict[str, Any] = {}
    for k, v in d.items():
        ft = field_types.get(k)
        if ft is None:
            continue
        if "bytes" in ft and isinstance(v, str):
            restored[k] = proof_from_hex(v)
        elif "datetime" in ft and isinstance(v, str):
            restored[k] = datetime.fromisoformat(v)
        else:
            restored[k] = v
    return cls(**restored)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class IEventStore(Protocol):
    """Append-only event log for replay and audit."""

    async def append(self, event: DomainEvent) -> None:
        """Persist an event.  Idempotent on ``event.event_id``."""
        ...

    async def read(
        self,
        event_type: type[DomainEvent] | None = None,
        correlation_id: str | None = None,
        after_sequence: int | None = None,
        limit: int = 10_000,
    ) -> list[DomainEvent]:
        """Read events in append order, with optional filters."""
        ...

    def replay(
        self,
        event_type: type[DomainEvent] | None = None,
        from_block: int | None = None,
    ) -> AsyncIterator[DomainEvent]:
        """Yield events lazily for state reconstruction."""
        ...


def _matches(
    event: DomainEvent,
    event_type: type[DomainEvent] | None,
    correlation_id: str | None,
) -> bool:
    if event_type is not None and type(event) is not event_type:
        return False
    if correlation_id is not None and event.correlation_id != correlation_id:
        return False
    return True


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryEventStore:
    """List-backed event store.  No persistence across restarts.

    Good for: unit tests and embedding the registry in another process.
    """

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._seen_ids: set[str] = set()

    async def append(self, event: DomainEvent) -> None:
        """Append *event*.  No-op if ``event_id`` already stored."""
        if event.event_id in self._seen_ids:
            return
        self._seen_ids.add(event.event_id)
        self._events.append(event)

    async def read(
        self,
        event_type: type[DomainEvent] | None = None,
        correlation_id: str | None = None,
        after_sequence: int | None = None,
        limit: int = 10_000,
    ) -> list[DomainEvent]:
        start = after_sequence if after_sequence is not None else 0
        out: list[DomainEvent] = []
        for event in self._events[start:]:
            if not _matches(event, event_type, correlation_id):
                continue
            out.append(event)
            if len(out) >= limit:
                break
        return out

    async def replay(
        self,
        event_type: type[DomainEvent] | None = None,
        from_block: int | None = None,
    ) -> AsyncIterator[DomainEvent]:
        for event in self._events:
            if not _matches(event, event_type, None):
                continue
            if from_block is not None and event.block < from_block:
                continue
            yield event

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        """Remove all events.  Testing only."""
        self._events.clear()
        self._seen_ids.clear()

    def __len__(self) -> int:
        return len(self._events)


# ---------------------------------------------------------------------------
# JSON-Lines file implementation
# ---------------------------------------------------------------------------

class JsonFileEventStore:
    """Append-only JSONL file store.  Durable across restarts.

    Each line is a JSON object with an ``__event_type__`` discriminator.
    Proof bytes are written as ``0x`` hex.

    A final line without a newline is an interrupted append; it is cut
    off when the store is opened.  Any other line that is not a JSON
    object raises ``RegistryCorruptionError`` on read.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._seen_ids: set[str] = set()
        self._registry: dict[str, type[DomainEvent]] = self._build_registry()

        # Load existing event IDs for idempotency
        if self._path.exists():
            self._truncate_partial_tail()
            self._load_seen_ids()

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _build_registry() -> dict[str, type[DomainEvent]]:
        """Build name → class lookup from all known event types."""
        from poe_registry.domain.events import ALL_DOMAIN_EVENTS
        return {cls.__qualname__: cls for cls in ALL_DOMAIN_EVENTS}

    def _truncate_partial_tail(self) -> None:
        data = self._path.read_bytes()
        if not data or data.endswith(b"\n"):
            return
        keep = data.rfind(b"\n") + 1
        with self._path.open("r+b") as f:
            f.truncate(keep)
        logger.warning(
            "Dropped %d bytes of an interrupted append at the end of %s",
            len(data) - keep, self._path,
        )

    def _load_seen_ids(self) -> None:
        for d in self._iter_dicts():
            eid = d.get("event_id")
            if eid:
                self._seen_ids.add(eid)

    def _iter_dicts(self):
        if not self._path.exists():
            return
        with self._path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    d = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise RegistryCorruptionError(
                        f"Malformed event at {self._path}:{lineno}: {exc}"
                    ) from exc
                if not isinstance(d, dict):
                    raise RegistryCorruptionError(
                        f"Event at {self._path}:{lineno} is not a JSON object"
                    )
                yield d

    def _iter_events(self):
        for d in self._iter_dicts():
            event = _event_from_dict(d, self._registry)
            if event is not None:
                yield event

    async def append(self, event: DomainEvent) -> None:
        if event.event_id in self._seen_ids:
            return
        line = json.dumps(_event_to_dict(event), cls=_EventEncoder)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        self._seen_ids.add(event.event_id)

    async def read(
        self,
        event_type: type[DomainEvent] | None = None,
        correlation_id: str | None = None,
        after_sequence: int | None = None,
        limit: int = 10_000,
    ) -> list[DomainEvent]:
        out: list[DomainEvent] = []
        for seq, event in enumerate(self._iter_events()):
            if after_sequence is not None and seq < after_sequence:
                continue
            if not _matches(event, event_type, correlation_id):
                continue
            out.append(event)
            if len(out) >= limit:
                break
        return out

    async def replay(
        self,
        event_type: type[DomainEvent] | None = None,
        from_block: int | None = None,
    ) -> AsyncIterator[DomainEvent]:
        for event in self._iter_events():
            if not _matches(event, event_type, None):
                continue
            if from_block is not None and event.block < from_block:
                continue
            yield event

    def __len__(self) -> int:
        return len(self._seen_ids)
