"""Post-commit event dispatch to side-effect handlers.

Services ``emit`` events after their transaction commits. Emission only
appends to an in-memory queue. A background worker started by the
application lifespan hands each event to its own task, which runs the
subscribed handlers concurrently; a slow handler delays neither its siblings
nor later events. Handler failures are logged and dropped, never retried, and
never reach the caller whose mutation produced the event.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from taskboard_api.common.logging import current_correlation_id, log_context

logger = logging.getLogger(__name__)

EventHandler = Callable[["Event"], Awaitable[None]]


@dataclass(slots=True)
class Event:
    """Envelope passed to subscribed handlers."""

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    correlation_id: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        self.payload = MappingProxyType(dict(self.payload))


class EventDispatcher:
    """In-memory queue that fans events out to registered handlers."""

    def __init__(self, *, max_pending: int = 10_000) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: deque[Event] = deque(maxlen=max_pending)
        self._wakeup: asyncio.Event | None = None
        self._worker: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._stopping = False

    # ---- Subscription ------------------------------------------------------

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event_name`` if not already registered."""

        handlers = self._subscribers[event_name]
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_name)
        if not handlers:
            return
        with suppress(ValueError):
            handlers.remove(handler)
        if not handlers:
            self._subscribers.pop(event_name, None)

    def clear(self) -> None:
        self._subscribers.clear()

    # ---- Emission ----------------------------------------------------------

    def emit(self, name: str, payload: Mapping[str, Any] | None = None) -> Event:
        """Queue an event for delivery; never blocks and never raises."""

        event = Event(name=name, payload=payload or {}, correlation_id=current_correlation_id())
        if len(self._pending) == self._pending.maxlen:
            logger.warning("events.queue.full", extra=log_context(event_name=name))
        self._pending.append(event)
        if self._wakeup is not None:
            self._wakeup.set()
        return event

    @property
    def pending(self) -> int:
        return len(self._pending)

    # ---- Delivery ----------------------------------------------------------

    def _dispatch_pending(self) -> int:
        dispatched = 0
        while self._pending:
            event = self._pending.popleft()
            task = asyncio.create_task(self._deliver(event), name=f"taskboard-event:{event.name}")
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            dispatched += 1
        return dispatched

    async def drain(self) -> int:
        """Deliver every queued event and wait for in-flight deliveries.

        Returns how many events this call dispatched.
        """

        dispatched = 0
        while self._pending or self._in_flight:
            dispatched += self._dispatch_pending()
            if self._in_flight:
                await asyncio.gather(*self._in_flight)
        return dispatched

    async def _deliver(self, event: Event) -> None:
        handlers = list(self._subscribers.get(event.name, ()))
        await asyncio.gather(*(self._call(handler, event) for handler in handlers))

    async def _call(self, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "events.handler.failed",
                extra=log_context(
                    event_name=event.name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    correlation_id=event.correlation_id,
                ),
            )

    # ---- Worker lifecycle --------------------------------------------------

    def start(self) -> None:
        """Start the background delivery loop on the running event loop."""

        if self._worker is not None and not self._worker.done():
            return
        self._stopping = False
        self._wakeup = asyncio.Event()
        self._worker = asyncio.create_task(self._run(), name="taskboard-event-worker")
        logger.info("events.worker.started")

    async def _run(self) -> None:
        assert self._wakeup is not None
        while not self._stopping:
            await self._wakeup.wait()
            self._wakeup.clear()
            self._dispatch_pending()

    async def stop(self) -> None:
        """Deliver what is still queued or in flight, then stop the worker."""

        self._stopping = True
        if self._wakeup is not None:
            self._wakeup.set()
        worker, self._worker = self._worker, None
        if worker is not None:
            with suppress(asyncio.CancelledError):
                await worker
        await self.drain()
        self._wakeup = None
        logger.info("events.worker.stopped")


__all__ = ["Event", "EventDispatcher", "EventHandler"]
