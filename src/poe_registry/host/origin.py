"""Origin authentication.

The registry never checks signatures.  The host hands over an origin it
has already verified; this layer only insists that the origin is a
signed account before any claim operation sees it.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from poe_registry.core.errors import BadOrigin


class Origin(BaseModel):
    """Who a call claims to come from.

    ``signer`` is ``None`` for unsigned (inherent or root) calls.
    """

    model_config = {"frozen": True}

    signer: str | None = None

    @classmethod
    def signed(cls, account: str) -> Origin:
        return cls(signer=account)

    @classmethod
    def none(cls) -> Origin:
        return cls(signer=None)


class IOriginAuthenticator(Protocol):
    def authenticate(self, origin: Origin) -> str:
        """Return the sender account or raise ``BadOrigin``."""
        ...


class SignedOriginAuthenticator:
    """Accept signed origins only."""

    def authenticate(self, origin: Origin) -> str:
        if not origin.signer:
            raise BadOrigin("call requires a signed origin")
        return origin.signer
