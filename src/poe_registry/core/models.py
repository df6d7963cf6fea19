"""Core value types for the proof registry."""

from __future__ import annotations

from dataclasses import dataclass

#: Opaque content fingerprint.  Compared by value only.
Proof = bytes

#: Account identifier of an authenticated caller.
AccountId = str


@dataclass(frozen=True)
class ProofRecord:
    """Owner and creation block of a claimed proof.

    ``created_at`` is fixed at creation; transfers replace the whole
    record via ``with_owner`` so the block number is carried over.
    """

    owner: AccountId
    created_at: int

    def with_owner(self, owner: AccountId) -> ProofRecord:
        return ProofRecord(owner=owner, created_at=self.created_at)
