"""Tests for the EventBus."""
import asyncio
from datetime import date, datetime

import pytest

from src.engine.types import PayoutResult, PayoutStatus
from src.workers.event_bus import (
    PAYOUT_PROCESSED,
    PERIOD_COMPLETED,
    Event,
    EventBus,
    get_event_bus,
    reset_event_bus,
)


@pytest.fixture
def event_bus():
    """Create a fresh event bus for each test."""
    return EventBus()


@pytest.fixture(autouse=True)
def reset_global_bus():
    """Reset the global event bus before each test."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.mark.asyncio
async def test_subscribe_and_emit(event_bus):
    """Payout results arrive intact at subscribers."""
    received = []

    async def on_payout(event: Event):
        received.append(event)

    event_bus.subscribe(PAYOUT_PROCESSED, on_payout)
    result = PayoutResult(
        status=PayoutStatus.PROCESSED, account_id="acct-1", date=date(2024, 1, 5), amount=12.5
    )

    await event_bus.emit_sync(PAYOUT_PROCESSED, result)

    assert len(received) == 1
    assert received[0].name == PAYOUT_PROCESSED
    assert received[0].data.amount == 12.5
    assert isinstance(received[0].timestamp, datetime)
    assert event_bus.delivered == 1


@pytest.mark.asyncio
async def test_multiple_subscribers(event_bus):
    received_1 = []
    received_2 = []

    async def handler1(event: Event):
        received_1.append(event)

    async def handler2(event: Event):
        received_2.append(event)

    event_bus.subscribe(PERIOD_COMPLETED, handler1)
    event_bus.subscribe(PERIOD_COMPLETED, handler2)

    await event_bus.emit_sync(PERIOD_COMPLETED, "acct-1")

    assert [e.data for e in received_1] == ["acct-1"]
    assert [e.data for e in received_2] == ["acct-1"]


@pytest.mark.asyncio
async def test_unsubscribe(event_bus):
    received = []

    async def handler(event: Event):
        received.append(event)

    event_bus.subscribe(PERIOD_COMPLETED, handler)
    await event_bus.emit_sync(PERIOD_COMPLETED, "first")
    event_bus.unsubscribe(PERIOD_COMPLETED, handler)
    await event_bus.emit_sync(PERIOD_COMPLETED, "second")

    assert len(received) == 1


def test_unsubscribe_unknown_handler_is_ignored(event_bus):
    async def handler(event: Event):
        pass

    event_bus.unsubscribe(PERIOD_COMPLETED, handler)
    assert event_bus.get_subscriber_count(PERIOD_COMPLETED) == 0


@pytest.mark.asyncio
async def test_no_subscribers(event_bus):
    """Emitting with no subscribers doesn't error."""
    await event_bus.emit_sync("nobody_listens", "data")


@pytest.mark.asyncio
async def test_event_bus_run_and_stop():
    """Queued events are delivered by the run loop."""
    bus = EventBus()
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe(PAYOUT_PROCESSED, handler)
    task = asyncio.create_task(bus.run())

    await asyncio.sleep(0.1)
    assert bus.is_running

    await bus.emit(PAYOUT_PROCESSED, "data1")
    await asyncio.sleep(0.1)
    assert len(received) == 1
    assert bus.pending == 0

    bus.stop()
    await task

    assert not bus.is_running


@pytest.mark.asyncio
async def test_handler_error_doesnt_break_bus(event_bus):
    """A failing handler doesn't stop the others."""
    received = []

    async def bad_handler(event: Event):
        raise ValueError("Test error")

    async def good_handler(event: Event):
        received.append(event)

    event_bus.subscribe(PAYOUT_PROCESSED, bad_handler)
    event_bus.subscribe(PAYOUT_PROCESSED, good_handler)

    await event_bus.emit_sync(PAYOUT_PROCESSED, "data")

    assert len(received) == 1
    assert event_bus.delivered == 1


@pytest.mark.asyncio
async def test_subscriber_count(event_bus):
    async def handler(event: Event):
        pass

    assert event_bus.get_subscriber_count(PERIOD_COMPLETED) == 0

    event_bus.subscribe(PERIOD_COMPLETED, handler)
    event_bus.subscribe(PERIOD_COMPLETED, handler)
    assert event_bus.get_subscriber_count(PERIOD_COMPLETED) == 2

    event_bus.unsubscribe(PERIOD_COMPLETED, handler)
    assert event_bus.get_subscriber_count(PERIOD_COMPLETED) == 1


def test_global_event_bus():
    """The shared bus is a singleton until reset."""
    bus1 = get_event_bus()
    assert get_event_bus() is bus1

    reset_event_bus()
    assert get_event_bus() is not bus1
