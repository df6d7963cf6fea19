"""Logical clock for claim timestamps.

Records are stamped with a block number, not wall time.  The host's
sequencer owns the clock; the claim service only reads ``now()``.
"""

from __future__ import annotations

from typing import Protocol


class IClock(Protocol):
    """Logical time source used by the claim service."""

    def now(self) -> int:
        """Current block number."""
        ...


class BlockClock:
    """Monotonic block-height counter.

    Time advances only when the sequencer closes a block.
    """

    def __init__(self, genesis: int = 0) -> None:
        if genesis < 0:
            raise ValueError(f"Genesis block must be >= 0, got {genesis}")
        self._block = genesis

    def now(self) -> int:
        return self._block

    def set_block(self, block: int) -> None:
        """Jump to *block*.  Must not go backwards."""
        if block < self._block:
            raise ValueError(
                f"BlockClock cannot go backwards: {block} < {self._block}"
            )
        self._block = block

    def advance(self, blocks: int = 1) -> int:
        """Advance by *blocks* and return the new block number."""
        self.set_block(self._block + blocks)
        return self._block
