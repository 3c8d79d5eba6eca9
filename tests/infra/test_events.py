from __future__ import annotations

import asyncio

import pytest

from taskboard_api.features.tasks.realtime import MAX_BUFFERED_EVENTS, TaskEventBroker
from taskboard_api.infra.events import Event, EventDispatcher


@pytest.mark.asyncio
async def test_drain_delivers_in_order_to_each_handler() -> None:
    events = EventDispatcher()
    seen: list[tuple[str, str]] = []

    async def first(event: Event) -> None:
        seen.append(("first", event.payload["n"]))

    async def second(event: Event) -> None:
        seen.append(("second", event.payload["n"]))

    events.subscribe("thing", first)
    events.subscribe("thing", second)
    events.subscribe("thing", first)
    events.emit("thing", {"n": "a"})
    events.emit("thing", {"n": "b"})
    events.emit("unrelated")

    assert events.pending == 3
    assert await events.drain() == 3
    assert seen == [("first", "a"), ("second", "a"), ("first", "b"), ("second", "b")]


@pytest.mark.asyncio
async def test_handler_failure_is_isolated() -> None:
    events = EventDispatcher()
    delivered: list[str] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("boom")

    async def healthy(event: Event) -> None:
        delivered.append(event.name)

    events.subscribe("thing", broken)
    events.subscribe("thing", healthy)
    events.emit("thing")

    await events.drain()

    assert delivered == ["thing"]


@pytest.mark.asyncio
async def test_slow_handler_does_not_hold_back_siblings_or_later_events() -> None:
    events = EventDispatcher()
    release = asyncio.Event()
    reached: list[str] = []
    fast_seen = asyncio.Event()

    async def stalled(event: Event) -> None:
        await release.wait()
        reached.append("stalled")

    async def sibling(event: Event) -> None:
        reached.append("sibling")

    async def later(event: Event) -> None:
        reached.append("later")
        fast_seen.set()

    events.subscribe("email", stalled)
    events.subscribe("email", sibling)
    events.subscribe("publish", later)
    events.start()
    try:
        events.emit("email")
        events.emit("publish")
        await asyncio.wait_for(fast_seen.wait(), timeout=1)

        assert reached == ["sibling", "later"]
    finally:
        release.set()
        await events.stop()

    assert reached == ["sibling", "later", "stalled"]


@pytest.mark.asyncio
async def test_drain_waits_for_deliveries_started_by_worker() -> None:
    events = EventDispatcher()
    release = asyncio.Event()
    started = asyncio.Event()
    finished: list[str] = []

    async def handler(event: Event) -> None:
        started.set()
        await release.wait()
        finished.append(event.name)

    events.subscribe("thing", handler)
    events.start()
    events.emit("thing")
    await asyncio.wait_for(started.wait(), timeout=1)

    drain = asyncio.create_task(events.drain())
    await asyncio.sleep(0)
    assert not drain.done()
    release.set()
    await drain
    await events.stop()

    assert finished == ["thing"]


def test_payload_is_read_only() -> None:
    event = EventDispatcher().emit("thing", {"a": 1})

    with pytest.raises(TypeError):
        event.payload["a"] = 2  # type: ignore[index]


@pytest.mark.asyncio
async def test_worker_delivers_and_stop_flushes() -> None:
    events = EventDispatcher()
    delivered = asyncio.Event()
    received: list[str] = []

    async def handler(event: Event) -> None:
        received.append(event.payload["n"])
        delivered.set()

    events.subscribe("thing", handler)
    events.start()
    events.emit("thing", {"n": "live"})
    await asyncio.wait_for(delivered.wait(), timeout=1)

    await events.stop()
    events.emit("thing", {"n": "late"})
    await events.drain()

    assert received == ["live", "late"]


def test_unsubscribe() -> None:
    events = EventDispatcher()

    async def handler(event: Event) -> None:
        raise AssertionError("should not run")

    events.subscribe("thing", handler)
    events.unsubscribe("thing", handler)
    events.unsubscribe("missing", handler)
    events.emit("thing")

    asyncio.run(events.drain())


def test_broker_fans_out_per_workspace() -> None:
    broker = TaskEventBroker()
    a1 = broker.subscribe(workspace_id=1, user_id=10)
    a2 = broker.subscribe(workspace_id=1, user_id=11)
    b = broker.subscribe(workspace_id=2, user_id=10)

    assert broker.publish(1, {"id": 5}) == 2
    assert a1.queue.get_nowait() == a2.queue.get_nowait() == {"id": 5}
    assert b.queue.empty()

    broker.unsubscribe(a1)
    broker.unsubscribe(a2)
    assert broker.subscriber_count(1) == 0
    assert broker.publish(1, {"id": 6}) == 0


def test_broker_skips_full_subscriber() -> None:
    broker = TaskEventBroker()
    slow = broker.subscribe(workspace_id=1, user_id=1)
    for index in range(MAX_BUFFERED_EVENTS):
        broker.publish(1, {"id": index})
    fast = broker.subscribe(workspace_id=1, user_id=2)

    assert broker.publish(1, {"id": "next"}) == 1
    assert fast.queue.get_nowait() == {"id": "next"}
    assert slow.queue.qsize() == MAX_BUFFERED_EVENTS
