import asyncio

from zeroloss.infrastructure.external.event_bus import EventBus


def test_publish_fans_out_to_every_subscriber():
    async def scenario():
        bus = EventBus()
        a = await bus.subscribe("candle", "a")
        b = await bus.subscribe("candle", "b")
        other = await bus.subscribe("signal", "c")
        await bus.publish("candle", 1)
        await bus.publish("candle", 2)
        return [a.get_nowait(), a.get_nowait()], [b.get_nowait(), b.get_nowait()], other.qsize()

    a, b, other = asyncio.run(scenario())
    assert a == b == [1, 2]
    assert other == 0


def test_full_queue_drops_oldest_event():
    async def scenario():
        bus = EventBus(max_queue_size=2)
        queue = await bus.subscribe("price_update", "slow")
        for i in range(5):
            await bus.publish("price_update", i)
        return [queue.get_nowait() for _ in range(queue.qsize())], bus.stats

    items, stats = asyncio.run(scenario())
    assert items == [3, 4]
    assert stats["dropped"] == 3
    assert stats["published"] == 5


def test_unsubscribe_is_idempotent_and_stops_delivery():
    async def scenario():
        bus = EventBus()
        queue = await bus.subscribe("candle", "ui")
        await bus.publish("candle", "before")
        first = await bus.unsubscribe("candle", "ui")
        second = await bus.unsubscribe("candle", "ui")
        await bus.publish("candle", "after")
        return first, second, [queue.get_nowait() for _ in range(queue.qsize())], bus.subscriber_count

    first, second, items, count = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert items == ["before"]
    assert count == 0


def test_unsubscribe_all():
    async def scenario():
        bus = EventBus()
        await bus.subscribe("candle", "a")
        await bus.subscribe("signal", "b")
        await bus.unsubscribe_all("candle")
        partial = bus.stats["topics"]
        await bus.unsubscribe_all()
        return partial, bus.subscriber_count

    partial, count = asyncio.run(scenario())
    assert partial == ["signal"]
    assert count == 0
