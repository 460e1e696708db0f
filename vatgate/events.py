"""Event bus — async pub/sub for SystemEvents.

One EventBus is created per application in the FastAPI lifespan. Before
``start()`` (or after ``stop()``) events are dispatched inline, so components
can be used without a running worker, e.g. in tests.

Usage:
    bus = EventBus()
    bus.subscribe(audit_on_event)
    await bus.start()

    await bus.emit(SystemEvent(
        event_type=EventType.VAT_VALIDATION_COMPLETED,
        data={"source": "primary"},
    ))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from vatgate.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

# Type alias for event handler functions
EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Queue-backed dispatcher with global and per-type subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[EventHandler] = []
        self._type_subscribers: dict[EventType, list[EventHandler]] = {}
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker_task: asyncio.Task[None] | None = None

    # ── Subscription ─────────────────────────────────────────────────

    def subscribe(self, handler: EventHandler, event_types: list[EventType] | None = None) -> None:
        """Register an event handler.

        Args:
            handler: Async function that accepts a SystemEvent.
            event_types: If provided, handler only receives these event types.
                         If None, handler receives ALL events.
        """
        if event_types is None:
            self._subscribers.append(handler)
            logger.info("Registered global event subscriber: %s", handler.__name__)
        else:
            for et in event_types:
                self._type_subscribers.setdefault(et, []).append(handler)
            logger.info(
                "Registered event subscriber %s for types: %s",
                handler.__name__,
                [t.value for t in event_types],
            )

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a previously registered handler."""
        if handler in self._subscribers:
            self._subscribers.remove(handler)
        for handlers in self._type_subscribers.values():
            if handler in handlers:
                handlers.remove(handler)

    # ── Publishing ───────────────────────────────────────────────────

    async def emit(self, event: SystemEvent) -> None:
        """Publish a SystemEvent to all subscribers.

        While the bus is running, events go through the queue so the emitter
        is never blocked by slow subscribers.
        """
        if self._queue is None:
            await self._dispatch(event)
            return

        await self._queue.put(event)
        logger.debug("Event emitted: %s", event.event_type.value)

    async def _dispatch(self, event: SystemEvent) -> None:
        """Dispatch a single event to all matching subscribers."""
        handlers: list[EventHandler] = list(self._subscribers)
        handlers.extend(self._type_subscribers.get(event.event_type, []))

        if not handlers:
            return

        # Run all handlers concurrently; isolate failures
        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    "Handler %s failed for %s: %s",
                    handler.__name__,
                    event.event_type.value,
                    result,
                )

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def start(self) -> None:
        """Start the background worker. Call during FastAPI lifespan startup."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker_task = asyncio.create_task(self._worker())
        logger.info(
            "Event bus started with %d global + %d typed subscribers",
            len(self._subscribers),
            sum(len(v) for v in self._type_subscribers.values()),
        )

    async def stop(self) -> None:
        """Drain pending events and stop the worker."""
        if self._queue is not None:
            await self._queue.join()

        if self._worker_task is not None and not self._worker_task.done():
            self._worker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker_task

        self._worker_task = None
        self._queue = None
        logger.info("Event bus stopped")

    async def _worker(self) -> None:
        """Background task that drains the queue and dispatches to subscribers."""
        assert self._queue is not None
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                await self._dispatch(event)
            except Exception:
                logger.exception("Error in event worker")
            finally:
                queue.task_done()
