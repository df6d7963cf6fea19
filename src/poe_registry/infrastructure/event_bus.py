"""Event bus abstraction and in-memory implementation.

This is the event sink the claim service publishes to.

Design goals
------------
1.  **Type-routed dispatching** — subscribers register for a concrete
    ``DomainEvent`` subclass.  When an event is published the bus routes
    it to every handler whose registered type matches ``type(event)``.
2.  **Write-ownership enforcement** — if ``enforce_ownership=True``,
    ``publish()`` verifies that ``event.source`` matches the value in
    ``WRITE_OWNERSHIP`` for that event type.  Violations raise
    ``WriteOwnershipError``.
3.  **Event store integration** — if an ``IEventStore`` is provided,
    every published event is appended to it before any handler runs.
    Unlike handler failures, an append failure propagates: the log is
    the registry's only durable state.
4.  **Two-phase publish** — ``persist()`` checks ownership, appends to the
    store and records history; ``deliver()`` runs the handlers.
    ``publish()`` does both.  A caller that holds a lock while persisting
    can deliver after releasing it, so handlers may call back into it.
5.  **Bounded history** — only the last ``max_history`` events are kept
    in memory; the event store is the full record.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from poe_registry.core.errors import RegistryError
from poe_registry.domain.events import DomainEvent, WRITE_OWNERSHIP
from poe_registry.infrastructure.event_store import IEventStore

logger = logging.getLogger(__name__)

# Type alias for async event handlers.
EventHandler = Callable[[DomainEvent], Awaitable[None]]


class WriteOwnershipError(RegistryError):
    """Raised when a module publishes an event it does not own."""


@runtime_checkable
class IEventBus(Protocol):
    """Publish/subscribe bus for canonical ``DomainEvent`` types."""

    async def publish(self, event: DomainEvent) -> None: ...

    async def persist(self, event: DomainEvent) -> None: ...

    async def deliver(self, event: DomainEvent) -> None: ...

    def subscribe(
        self,
        event_type: type[DomainEvent],
        handler: EventHandler,
    ) -> None: ...

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]: ...


class InMemoryEventBus:
    """Deterministic, in-process event bus.

    Parameters
    ----------
    enforce_ownership
        When ``True`` (default), ``publish()`` rejects events whose
        ``source`` doesn't match ``WRITE_OWNERSHIP[type(event)]``.
    event_store
        Optional ``IEventStore``.  When provided, every published event
        is appended to the store (idempotently).
    max_history
        How many recent events ``get_history()`` keeps.
    """

    def __init__(
        self,
        *,
        enforce_ownership: bool = True,
        event_store: IEventStore | None = None,
        max_history: int = 10_000,
    ) -> None:
        self._handlers: dict[
            type[DomainEvent], list[EventHandler]
        ] = defaultdict(list)
        self._history: deque[DomainEvent] = deque(maxlen=max_history)
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[tuple[DomainEvent, str]] = []
        self._enforce_ownership = enforce_ownership
        self._event_store = event_store

    async def publish(self, event: DomainEvent) -> None:
        """Persist *event*, then deliver it to subscribed handlers."""
        await self.persist(event)
        await self.deliver(event)

    async def persist(self, event: DomainEvent) -> None:
        """Check ownership, append *event* to the store and record it.

        Raises
        ------
        WriteOwnershipError
            If ownership enforcement is on and ``event.source`` is wrong.
        """
        event_cls = type(event)

        if self._enforce_ownership and event_cls in WRITE_OWNERSHIP:
            expected = WRITE_OWNERSHIP[event_cls]
            if event.source != expected:
                raise WriteOwnershipError(
                    f"{event_cls.__name__} must be published by "
                    f"source={expected!r}, got source={event.source!r}"
                )

        if self._event_store is not None:
            await self._event_store.append(event)

        self._history.append(event)

    async def deliver(self, event: DomainEvent) -> None:
        """Run every handler subscribed to ``type(event)``."""
        event_cls = type(event)
        # Subscribers are observers; their failures never undo a transition
        for handler in list(self._handlers.get(event_cls, [])):
            try:
                await handler(event)
            except Exception as exc:
                key = event_cls.__name__
                self._error_counts[key] += 1
                self._dead_letters.append((event, str(exc)))
                logger.exception("Handler error on %s: %s", key, exc)

    def subscribe(
        self,
        event_type: type[DomainEvent],
        handler: EventHandler,
    ) -> None:
        """Register *handler* for *event_type*."""
        self._handlers[event_type].append(handler)

    # -- Observability -----------------------------------------------------

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]:
        """Return published events, optionally filtered."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if type(e) is event_type]

    def clear_history(self) -> None:
        """Clear the event history (testing helper)."""
        self._history.clear()

    def get_error_counts(self) -> dict[str, int]:
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[tuple[DomainEvent, str]]:
        return list(self._dead_letters)

    @property
    def event_store(self) -> IEventStore | None:
        return self._event_store
