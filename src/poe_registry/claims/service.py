"""Claim service: validated state transitions over the proof store.

Each proof is either *Unclaimed* (no record) or *Claimed(owner,
created_at)*.  The three operations move a proof between those states:

    Unclaimed          --create_claim-->    Claimed(sender)
    Claimed(owner)     --transfer_claim-->  Claimed(dest)     (sender == owner)
    Claimed(owner)     --revoke_claim-->    Unclaimed          (sender == owner)

Every operation takes an already-authenticated ``sender``.  Checks run
in a fixed order and raise a ``ClaimError`` subclass before anything is
written, so a rejected call mutates nothing and emits nothing.  A
successful call performs exactly one store mutation and publishes
exactly one event.

Operations are serialized by an ``asyncio.Lock`` and there is no await
between the checks and the mutation, so the existence and ownership
lookups cannot be interleaved with another operation.  The event is
persisted under the lock; subscribers see it only after the lock is
released, so a handler may itself call the service.

Events carry the correlation id of the enclosing ``correlation_scope``
(the block sequencer opens one per block).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from poe_registry.core.clock import IClock
from poe_registry.core.errors import (
    NoSuchProof,
    NotProofOwner,
    ProofAlreadyClaimed,
    ProofTooLong,
    RegistryCorruptionError,
)
from poe_registry.core.ids import proof_to_hex
from poe_registry.core.models import AccountId, Proof, ProofRecord
from poe_registry.domain.events import (
    ClaimCreated,
    ClaimRevoked,
    ClaimTransfered,
    DomainEvent,
)
from poe_registry.infrastructure.event_bus import IEventBus
from poe_registry.storage.proof_store import IProofStore

logger = logging.getLogger(__name__)

_SOURCE = "claims"

_correlation_id: ContextVar[str] = ContextVar("claim_correlation_id", default="")


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[None]:
    """Tag events emitted inside this scope with *correlation_id*."""
    token = _correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


class ClaimService:
    """Create, transfer and revoke proof claims.

    Parameters
    ----------
    store:
        Proof store this service reads and writes.  Not shared implicitly;
        pass the same store to two services only if they are meant to see
        the same registry.
    bus:
        Event sink for ``ClaimCreated`` / ``ClaimTransfered`` /
        ``ClaimRevoked``.
    clock:
        Logical clock; ``clock.now()`` becomes ``created_at``.
    max_bytes_in_hash:
        Upper bound on proof length.  This is the only place it is checked.
    """

    def __init__(
        self,
        store: IProofStore,
        bus: IEventBus,
        clock: IClock,
        *,
        max_bytes_in_hash: int = 64,
    ) -> None:
        if max_bytes_in_hash <= 0:
            raise ValueError(
                f"max_bytes_in_hash must be positive, got {max_bytes_in_hash}"
            )
        self._store = store
        self._bus = bus
        self._clock = clock
        self._max_bytes = max_bytes_in_hash
        self._lock = asyncio.Lock()

    @property
    def store(self) -> IProofStore:
        return self._store

    @property
    def max_bytes_in_hash(self) -> int:
        return self._max_bytes

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_claim(self, sender: AccountId, proof: Proof) -> ClaimCreated:
        """Claim an unclaimed *proof* for *sender*.

        Raises ``ProofTooLong`` or ``ProofAlreadyClaimed``.
        """
        self._check_account(sender)
        async with self._lock:
            self._check_length(proof)
            if self._store.exists(proof):
                raise ProofAlreadyClaimed(proof_to_hex(proof))

            now = self._clock.now()
            self._store.insert(proof, ProofRecord(owner=sender, created_at=now))
            event = ClaimCreated(
                who=sender,
                proof=proof,
                created_at=now,
                block=now,
                correlation_id=_correlation_id.get(),
                source=_SOURCE,
            )
            await self._persist(event, undo=lambda: self._store.remove(proof))
            logger.info(
                "Claim created: proof=%s owner=%s block=%d",
                proof_to_hex(proof), sender, now,
            )
        await self._bus.deliver(event)
        return event

    async def transfer_claim(
        self,
        sender: AccountId,
        new_owner: AccountId,
        proof: Proof,
    ) -> ClaimTransfered:
        """Hand *proof* from *sender* to *new_owner*.

        ``new_owner == sender`` is accepted and still emits an event.
        Raises ``ProofTooLong``, ``NoSuchProof`` or ``NotProofOwner``.
        """
        self._check_account(new_owner)
        async with self._lock:
            self._check_length(proof)
            owner = self._owner_checked(sender, proof)

            self._store.set_owner(proof, new_owner)
            event = ClaimTransfered(
                sender=sender,
                dest=new_owner,
                proof=proof,
                block=self._clock.now(),
                correlation_id=_correlation_id.get(),
                source=_SOURCE,
            )
            await self._persist(
                event, undo=lambda: self._store.set_owner(proof, owner),
            )
            logger.info(
                "Claim transferred: proof=%s from=%s to=%s",
                proof_to_hex(proof), sender, new_owner,
            )
        await self._bus.deliver(event)
        return event

    async def revoke_claim(self, sender: AccountId, proof: Proof) -> ClaimRevoked:
        """Drop *sender*'s claim on *proof*; anyone may claim it afterwards.

        Raises ``ProofTooLong``, ``NoSuchProof`` or ``NotProofOwner``.
        """
        async with self._lock:
            self._check_length(proof)
            self._owner_checked(sender, proof)

            record = self._store.get(proof)
            self._store.remove(proof)
            event = ClaimRevoked(
                who=sender,
                proof=proof,
                block=self._clock.now(),
                correlation_id=_correlation_id.get(),
                source=_SOURCE,
            )
            await self._persist(event, undo=lambda: self._store.insert(proof, record))
            logger.info(
                "Claim revoked: proof=%s owner=%s", proof_to_hex(proof), sender,
            )
        await self._bus.deliver(event)
        return event

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_claim(self, proof: Proof) -> ProofRecord | None:
        return self._store.get(proof)

    def owner_of(self, proof: Proof) -> AccountId | None:
        record = self._store.get(proof)
        return record.owner if record is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_length(self, proof: Proof) -> None:
        if len(proof) > self._max_bytes:
            raise ProofTooLong(len(proof), self._max_bytes)

    @staticmethod
    def _check_account(account: AccountId) -> None:
        # An empty owner would be indistinguishable from a corrupt record
        if not account:
            raise ValueError("account id must be non-empty")

    def _owner_checked(self, sender: AccountId, proof: Proof) -> AccountId:
        """Run the existence then ownership checks; return the owner."""
        if not self._store.exists(proof):
            raise NoSuchProof(proof_to_hex(proof))

        record = self._store.get(proof)
        if record is None or not record.owner:
            logger.error(
                "Present proof has no owner: proof=%s record=%r",
                proof_to_hex(proof), record,
            )
            raise RegistryCorruptionError(
                f"All proofs must have an owner: {proof_to_hex(proof)}"
            )

        if record.owner != sender:
            raise NotProofOwner(proof_to_hex(proof))
        return record.owner

    async def _persist(self, event: DomainEvent, undo: Callable[[], None]) -> None:
        """Persist *event*; on failure roll back the mutation and re-raise."""
        try:
            await self._bus.persist(event)
        except Exception:
            undo()
            logger.exception(
                "Persisting %s failed; mutation rolled back",
                type(event).__name__,
            )
            raise
