"""Status Channel - bounded fan-out of status events."""

import pytest

from timebill.bridge.status_channel import StatusChannel


async def test_subscribers_receive_published_events():
    channel = StatusChannel("test")
    first, second = channel.subscribe(), channel.subscribe()

    event = channel.publish("connection", state="connected")

    assert event == {"type": "connection", "state": "connected"}
    assert await first.get() == event
    assert second.get_nowait() == event


async def test_full_queue_drops_oldest_event():
    channel = StatusChannel("test", queue_size=2)
    subscription = channel.subscribe()
    for n in range(3):
        channel.publish("tick", n=n)

    assert [e["n"] for e in subscription.drain()] == [1, 2]
    assert subscription.dropped == 1


async def test_subscriber_limit():
    channel = StatusChannel("test", max_subscribers=1)
    channel.subscribe()
    with pytest.raises(RuntimeError):
        channel.subscribe()


async def test_unsubscribe_stops_delivery():
    channel = StatusChannel("test")
    with channel.subscribe() as subscription:
        assert channel.subscriber_count == 1
    assert channel.subscriber_count == 0

    channel.publish("tick")
    assert subscription.drain() == []


async def test_publish_without_subscribers_is_a_no_op():
    assert StatusChannel("test").publish("tick") == {"type": "tick"}
