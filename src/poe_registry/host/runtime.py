"""Host adapter: authenticate, dispatch and sequence claim calls.

The claim service knows nothing about origins, blocks or result
reporting.  This module is the thin layer a host plugs into:

*  ``Dispatcher`` — one signed call in, one ``ClaimService`` operation
   out, reported as a ``DispatchResult``.  Caller errors are captured in
   the result; ``RegistryCorruptionError`` is not.
*  ``BlockSequencer`` — applies a batch of calls in delivery order within
   one block, then advances the block clock.
*  ``open_registry`` — wires store, bus, event log, clock and service
   together and replays the event log so state survives restarts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from poe_registry.claims.replay import rebuild_store_async
from poe_registry.claims.service import ClaimService, correlation_scope
from poe_registry.core.clock import BlockClock
from poe_registry.core.config import Settings
from poe_registry.core.errors import BadOrigin, ClaimError
from poe_registry.core.ids import new_id, proof_to_hex
from poe_registry.domain.events import DomainEvent
from poe_registry.host.calls import (
    CreateClaim,
    RevokeClaim,
    TransferClaim,
    call_weight,
)
from poe_registry.host.origin import (
    IOriginAuthenticator,
    Origin,
    SignedOriginAuthenticator,
)
from poe_registry.infrastructure.event_bus import InMemoryEventBus
from poe_registry.infrastructure.event_store import IEventStore, InMemoryEventStore
from poe_registry.storage.proof_store import InMemoryProofStore

logger = logging.getLogger(__name__)

AnyCall = CreateClaim | TransferClaim | RevokeClaim


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatched call."""

    ok: bool
    block: int
    weight: int
    error: str | None = None
    event: DomainEvent | None = None


class Dispatcher:
    """Route an authenticated call to the matching claim operation."""

    def __init__(
        self,
        service: ClaimService,
        clock: BlockClock,
        authenticator: IOriginAuthenticator | None = None,
    ) -> None:
        self._service = service
        self._clock = clock
        self._auth = authenticator or SignedOriginAuthenticator()

    async def dispatch(self, origin: Origin, call: AnyCall) -> DispatchResult:
        block = self._clock.now()
        weight = call_weight(call)

        try:
            sender = self._auth.authenticate(origin)
        except BadOrigin as exc:
            logger.warning("Rejected %s: %s", call.call, exc)
            return DispatchResult(
                ok=False, block=block, weight=weight, error="BadOrigin",
            )

        try:
            if isinstance(call, CreateClaim):
                event = await self._service.create_claim(sender, call.proof)
            elif isinstance(call, TransferClaim):
                event = await self._service.transfer_claim(
                    sender, call.dest, call.proof,
                )
            elif isinstance(call, RevokeClaim):
                event = await self._service.revoke_claim(sender, call.proof)
            else:
                raise TypeError(f"Unknown call type: {type(call).__name__}")
        except ClaimError as exc:
            logger.info(
                "Call %s by %s failed: %s proof=%s",
                call.call, sender, exc.name, proof_to_hex(call.proof),
            )
            return DispatchResult(
                ok=False, block=block, weight=weight, error=exc.name,
            )

        return DispatchResult(ok=True, block=block, weight=weight, event=event)


class BlockSequencer:
    """Apply calls one block at a time, in the order delivered."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        clock: BlockClock,
    ) -> None:
        self._dispatcher = dispatcher
        self._clock = clock

    @property
    def current_block(self) -> int:
        return self._clock.now()

    async def apply_block(
        self,
        calls: Sequence[tuple[Origin, AnyCall]],
    ) -> list[DispatchResult]:
        """Dispatch *calls* sequentially in the current block, then advance.

        Events emitted in the block share a correlation id.
        """
        results: list[DispatchResult] = []
        try:
            with correlation_scope(new_id()):
                for origin, call in calls:
                    results.append(await self._dispatcher.dispatch(origin, call))
        finally:
            self._clock.advance()
        logger.debug(
            "Block %d closed: %d calls, %d ok",
            self._clock.now() - 1, len(results), sum(r.ok for r in results),
        )
        return results


@dataclass
class Registry:
    """Everything one registry instance needs, wired together."""

    settings: Settings
    store: InMemoryProofStore
    event_store: IEventStore
    bus: InMemoryEventBus
    clock: BlockClock
    service: ClaimService
    dispatcher: Dispatcher
    sequencer: BlockSequencer = field(init=False)

    def __post_init__(self) -> None:
        self.sequencer = BlockSequencer(self.dispatcher, self.clock)

    async def submit(self, origin: Origin, call: AnyCall) -> DispatchResult:
        """Apply a single call in its own block."""
        (result,) = await self.sequencer.apply_block([(origin, call)])
        return result


async def open_registry(
    settings: Settings,
    event_store: IEventStore | None = None,
    authenticator: IOriginAuthenticator | None = None,
) -> Registry:
    """Build a registry and restore its state from *event_store*.

    The clock resumes one block after the last logged event, or at
    ``settings.genesis_block`` for an empty log.
    """
    event_store = event_store if event_store is not None else InMemoryEventStore()
    store = InMemoryProofStore()

    last_block: int | None = None

    async def _track(events):
        nonlocal last_block
        async for event in events:
            last_block = event.block if last_block is None else max(last_block, event.block)
            yield event

    await rebuild_store_async(_track(event_store.replay()), store)

    clock = BlockClock(settings.genesis_block)
    if last_block is not None and last_block + 1 > clock.now():
        clock.set_block(last_block + 1)

    bus = InMemoryEventBus(event_store=event_store)
    service = ClaimService(
        store, bus, clock, max_bytes_in_hash=settings.max_bytes_in_hash,
    )
    dispatcher = Dispatcher(service, clock, authenticator)
    logger.info(
        "Registry opened: %d records, block=%d", len(store), clock.now(),
    )
    return Registry(
        settings=settings,
        store=store,
        event_store=event_store,
        bus=bus,
        clock=clock,
        service=service,
        dispatcher=dispatcher,
    )
