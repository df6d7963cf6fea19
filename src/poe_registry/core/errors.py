"""Custom exception hierarchy for the proof registry."""


class RegistryError(Exception):
    """Base exception for all proof registry errors."""


# --- Configuration ---
class ConfigError(RegistryError):
    """Invalid or missing configuration."""


# --- Claims (caller errors) ---
class ClaimError(RegistryError):
    """A claim operation was rejected before any state changed.

    Subclasses are surfaced verbatim to the caller; they are never
    transient and never retried automatically.
    """

    @property
    def name(self) -> str:
        return type(self).__name__


class ProofAlreadyClaimed(ClaimError):
    """The proof already has an owner."""


class NoSuchProof(ClaimError):
    """The proof has not been claimed (or was revoked)."""


class NotProofOwner(ClaimError):
    """The caller does not own the proof."""


class ProofTooLong(ClaimError):
    """The proof exceeds the configured ``max_bytes_in_hash``."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Proof is {length} bytes, limit is {limit}")


# --- Host ---
class BadOrigin(RegistryError):
    """The call did not come from a signed origin."""


# --- Internal consistency ---
class RegistryCorruptionError(RegistryError):
    """A stored record violates the registry invariants.

    Not a caller error.  No sequence of create/transfer/revoke can
    produce this state, so it is never caught by the dispatcher.
    """
