"""Host adapter — call payloads, origin checks, dispatch and sequencing."""

from poe_registry.host.calls import CreateClaim, RevokeClaim, TransferClaim, parse_call
from poe_registry.host.origin import Origin, SignedOriginAuthenticator
from poe_registry.host.runtime import (
    BlockSequencer,
    DispatchResult,
    Dispatcher,
    Registry,
    open_registry,
)

__all__ = [
    "BlockSequencer",
    "CreateClaim",
    "DispatchResult",
    "Dispatcher",
    "Origin",
    "Registry",
    "RevokeClaim",
    "SignedOriginAuthenticator",
    "TransferClaim",
    "open_registry",
    "parse_call",
]
