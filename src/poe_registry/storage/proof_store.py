"""Proof record store: the authoritative proof -> record mapping.

Every read and write of claim state goes through an ``IProofStore``.
Operations are single-key and synchronous, and they never emit events;
that is the claim service's job.

Invariants
----------
1.  A present key maps to exactly one ``ProofRecord``; absence means the
    proof was never claimed or has been revoked.
2.  ``insert`` refuses a key that is already present.
3.  ``set_owner`` keeps ``created_at``.
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, runtime_checkable

from poe_registry.core.errors import NoSuchProof, ProofAlreadyClaimed
from poe_registry.core.ids import proof_to_hex
from poe_registry.core.models import AccountId, Proof, ProofRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class IProofStore(Protocol):
    """Keyed storage for proof records."""

    def exists(self, proof: Proof) -> bool: ...

    def get(self, proof: Proof) -> ProofRecord | None: ...

    def insert(self, proof: Proof, record: ProofRecord) -> None: ...

    def set_owner(self, proof: Proof, new_owner: AccountId) -> None: ...

    def remove(self, proof: Proof) -> None: ...


class InMemoryProofStore:
    """Dict-backed proof store.

    Each instance is isolated, so several registries can coexist in one
    process.  Durability comes from replaying the event log into a fresh
    store (see ``poe_registry.claims.replay``).
    """

    def __init__(self) -> None:
        self._records: dict[Proof, ProofRecord] = {}

    def exists(self, proof: Proof) -> bool:
        return proof in self._records

    def get(self, proof: Proof) -> ProofRecord | None:
        return self._records.get(proof)

    def insert(self, proof: Proof, record: ProofRecord) -> None:
        """Store *record* under *proof*.

        Raises ``ProofAlreadyClaimed`` if a record is already present.
        """
        if proof in self._records:
            raise ProofAlreadyClaimed(proof_to_hex(proof))
        self._records[proof] = record
        logger.debug(
            "Record inserted: proof=%s owner=%s created_at=%d",
            proof_to_hex(proof), record.owner, record.created_at,
        )

    def set_owner(self, proof: Proof, new_owner: AccountId) -> None:
        """Replace the owner of *proof*, keeping its creation block."""
        record = self._records.get(proof)
        if record is None:
            raise NoSuchProof(proof_to_hex(proof))
        self._records[proof] = record.with_owner(new_owner)

    def remove(self, proof: Proof) -> None:
        if proof not in self._records:
            raise NoSuchProof(proof_to_hex(proof))
        del self._records[proof]
        logger.debug("Record removed: proof=%s", proof_to_hex(proof))

    # -- Read helpers ------------------------------------------------------

    def items(self) -> list[tuple[Proof, ProofRecord]]:
        """Snapshot of all records.  Order carries no meaning."""
        return list(self._records.items())

    def __contains__(self, proof: object) -> bool:
        return proof in self._records

    def __iter__(self) -> Iterator[Proof]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
