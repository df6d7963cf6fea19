"""Canonical domain events for the proof registry.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``).
2.  Every event type has exactly **one writer** — see ``WRITE_OWNERSHIP``.
3.  ``event_id`` is a UUID4 generated at creation time; it serves as the
    idempotency / dedup key in the event store.
4.  ``correlation_id`` links all events that originate from the *same
    block*; the sequencer sets it to the block's batch id.
5.  Exactly one event is emitted per successful claim operation and none
    on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from poe_registry.core.ids import new_id as _uuid
from poe_registry.core.ids import proof_to_hex
from poe_registry.core.ids import utc_now as _now

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Immutable base for every canonical domain event.

    Shared fields
    ~~~~~~~~~~~~~
    event_id        Unique identity (UUID4).  Idempotency key.
    timestamp       UTC creation time.  Informational only.
    correlation_id  Groups events from the same block.
    causation_id    The ``event_id`` that directly caused this event.
    source          Writer module that produced this event.
    block           Block number at which the event was emitted.
    """

    event_id: str = field(default_factory=_uuid)
    timestamp: datetime = field(default_factory=_now)
    correlation_id: str = ""
    causation_id: str = ""
    source: str = ""
    block: int = 0


# =========================================================================
# Claims  (writer: claims)
# =========================================================================

@dataclass(frozen=True)
class ClaimCreated(DomainEvent):
    """A proof was claimed.  [who, proof]"""

    who: str = ""
    proof: bytes = b""
    created_at: int = 0

    def __str__(self) -> str:
        return f"ClaimCreated({self.who}, {proof_to_hex(self.proof)})"


@dataclass(frozen=True)
class ClaimTransfered(DomainEvent):
    """Ownership of a proof moved to another account.  [from, to, proof]"""

    sender: str = ""
    dest: str = ""
    proof: bytes = b""

    def __str__(self) -> str:
        return (
            f"ClaimTransfered({self.sender}, {self.dest}, "
            f"{proof_to_hex(self.proof)})"
        )


@dataclass(frozen=True)
class ClaimRevoked(DomainEvent):
    """The owner gave up a proof.  [who, proof]"""

    who: str = ""
    proof: bytes = b""

    def __str__(self) -> str:
        return f"ClaimRevoked({self.who}, {proof_to_hex(self.proof)})"


# =========================================================================
# Write-ownership registry
# =========================================================================

#: Maps each canonical event type to the *only* ``source`` value that is
#: allowed to produce it.  The event bus rejects misattributed publishes.
WRITE_OWNERSHIP: dict[type[DomainEvent], str] = {
    ClaimCreated: "claims",
    ClaimTransfered: "claims",
    ClaimRevoked: "claims",
}


#: All canonical event types in a deterministic order.
ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = tuple(WRITE_OWNERSHIP.keys())
