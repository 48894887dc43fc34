"""
Async event bus for simulation notifications.

Events:
- "payout_processed": A daily payout was credited (data is a PayoutResult)
- "period_completed": A period's last daily target was paid
- "job_failed": A scheduled job raised
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

PAYOUT_PROCESSED = "payout_processed"
PERIOD_COMPLETED = "period_completed"
JOB_FAILED = "job_failed"

Handler = Callable[["Event"], Awaitable[None]]


@dataclass
class Event:
    """Container for an event."""

    name: str
    data: Any
    timestamp: datetime


class EventBus:
    """
    Async pub/sub used by the scheduler and CLI to fan out simulation events.

    Events are either queued (emit) and drained by run(), or delivered
    immediately (emit_sync). A failing handler is logged and does not stop
    the others.

    Usage:
        bus = EventBus()

        async def on_payout(event: Event):
            print(f"Credited {event.data.amount:.2f}")

        bus.subscribe("payout_processed", on_payout)
        asyncio.create_task(bus.run())

        await bus.emit("payout_processed", result)
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = {}
        self._queue: asyncio.Queue[Optional[Event]] = asyncio.Queue()
        self._running = False
        self.delivered = 0

    def subscribe(self, event_name: str, handler: Handler) -> None:
        """
        Subscribe to an event.

        Args:
            event_name: Name of the event to subscribe to
            handler: Async function to call when event is emitted
        """
        self._subscribers.setdefault(event_name, []).append(handler)
        logger.debug(f"Subscribed to '{event_name}': {handler.__name__}")

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._subscribers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Unsubscribed from '{event_name}': {handler.__name__}")

    async def emit(self, event_name: str, data: Any = None) -> None:
        """Queue an event for the run() loop."""
        await self._queue.put(Event(name=event_name, data=data, timestamp=datetime.now()))
        logger.debug(f"Emitted '{event_name}'")

    async def emit_sync(self, event_name: str, data: Any = None) -> None:
        """Deliver an event to all handlers and wait for them to finish."""
        await self._process_event(Event(name=event_name, data=data, timestamp=datetime.now()))

    async def _process_event(self, event: Event) -> None:
        handlers = list(self._subscribers.get(event.name, []))
        if not handlers:
            logger.debug(f"No handlers for '{event.name}'")
            return

        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)

        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error in handler '{handler.__name__}' for '{event.name}': {result}",
                    extra={"event_name": event.name, "handler": handler.__name__},
                )
            else:
                self.delivered += 1

    async def run(self) -> None:
        """
        Drain queued events until stop() is called.

        Start as a task alongside the scheduler.
        """
        logger.info("Event bus started")
        self._running = True

        while self._running:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                logger.info("Event bus cancelled")
                break

            if event is None:
                break

            await self._process_event(event)
            self._queue.task_done()

        self._running = False
        logger.info("Event bus stopped")

    def stop(self) -> None:
        """Stop the run() loop."""
        self._running = False
        self._queue.put_nowait(None)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Events queued but not yet delivered."""
        return self._queue.qsize()

    def get_subscriber_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, []))


_global_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the shared event bus instance."""
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus


def reset_event_bus() -> None:
    """Reset the shared event bus (useful for testing)."""
    global _global_bus
    if _global_bus is not None:
        _global_bus.stop()
    _global_bus = None
