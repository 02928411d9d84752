import asyncio

from meeting_notes.events.broadcaster import EventBroadcaster, EventKind


async def test_subscriber_receives_only_its_session():
    broadcaster = EventBroadcaster()
    sub_a = broadcaster.subscribe("a")
    sub_b = broadcaster.subscribe("b")

    broadcaster.publish("a", EventKind.SESSION_UPDATED, {"n": 1})

    assert [e.payload for e in sub_a.drain()] == [{"n": 1}]
    assert sub_b.drain() == []


async def test_global_channel_sees_every_session():
    broadcaster = EventBroadcaster()
    everything = broadcaster.subscribe()

    broadcaster.publish("a", EventKind.SESSION_UPDATED)
    broadcaster.publish("b", EventKind.SESSION_ENDED)

    assert [(e.session_id, e.kind) for e in everything.drain()] == [
        ("a", EventKind.SESSION_UPDATED),
        ("b", EventKind.SESSION_ENDED),
    ]


async def test_events_arrive_in_publish_order():
    broadcaster = EventBroadcaster()
    sub = broadcaster.subscribe("a")
    for i in range(5):
        broadcaster.publish("a", EventKind.SESSION_UPDATED, {"n": i})
    assert [e.payload["n"] for e in sub.drain()] == [0, 1, 2, 3, 4]


async def test_full_queue_drops_oldest_without_blocking():
    broadcaster = EventBroadcaster(queue_size=2)
    slow = broadcaster.subscribe("a")
    for i in range(4):
        broadcaster.publish("a", EventKind.SESSION_UPDATED, {"n": i})

    assert slow.dropped == 2
    assert [e.payload["n"] for e in slow.drain()] == [2, 3]


async def test_unsubscribe_stops_delivery():
    broadcaster = EventBroadcaster()
    sub = broadcaster.subscribe("a")
    sub.close()

    broadcaster.publish("a", EventKind.SESSION_UPDATED)
    assert sub.drain() == []
    assert broadcaster.subscriber_count("a") == 0


async def test_get_times_out_with_none():
    broadcaster = EventBroadcaster()
    sub = broadcaster.subscribe("a")
    assert await sub.get(timeout=0.01) is None

    broadcaster.publish("a", EventKind.SESSION_PROCESSED, {"parse": "structured"})
    event = await sub.get(timeout=1)
    assert event.to_dict()["kind"] == "session_processed"


async def test_publish_without_subscribers_is_harmless():
    event = EventBroadcaster().publish("nobody", EventKind.SESSION_ENDED)
    assert event.session_id == "nobody"


async def test_close_ends_async_iteration():
    broadcaster = EventBroadcaster()
    sub = broadcaster.subscribe("a")
    broadcaster.publish("a", EventKind.SESSION_UPDATED, {"n": 1})
    received = []

    async def consume():
        async for event in sub:
            received.append(event.payload["n"])

    consumer = asyncio.ensure_future(consume())
    await asyncio.sleep(0)
    sub.close()
    await asyncio.wait_for(consumer, timeout=1)

    assert received == [1]
    assert await sub.get() is None


async def test_close_on_full_queue_still_delivers_backlog():
    broadcaster = EventBroadcaster(queue_size=1)
    sub = broadcaster.subscribe("a")
    broadcaster.publish("a", EventKind.SESSION_ENDED)
    sub.close()

    events = [event async for event in sub]
    assert [e.kind for e in events] == [EventKind.SESSION_ENDED]
    assert sub.dropped == 0
