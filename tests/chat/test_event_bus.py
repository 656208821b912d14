"""Tests for the in-memory push event bus."""

import asyncio

from proma.chat.events import InMemoryEventBus
from proma.chat.models import ChatChunkEvent, ChatCompleteEvent


def _chunk(conversation_id: str, delta: str) -> ChatChunkEvent:
    return ChatChunkEvent(conversation_id=conversation_id, delta=delta)


class TestInMemoryEventBus:
    """Tests for InMemoryEventBus."""

    async def test_delivers_events_in_order(self) -> None:
        bus = InMemoryEventBus()

        async with bus.subscribe("conv-1") as events:
            bus.publish("conv-1", _chunk("conv-1", "a"))
            bus.publish("conv-1", _chunk("conv-1", "b"))
            bus.publish("conv-1", ChatCompleteEvent(conversation_id="conv-1", model="m"))

            received = []
            async for event in events:
                received.append(event)
                if event.type == "complete":
                    break

        assert [e.type for e in received] == ["chunk", "chunk", "complete"]
        assert [e.delta for e in received[:2]] == ["a", "b"]

    async def test_topics_are_isolated(self) -> None:
        bus = InMemoryEventBus()

        async with bus.subscribe("conv-1") as events:
            bus.publish("conv-2", _chunk("conv-2", "other"))
            bus.publish("conv-1", _chunk("conv-1", "mine"))

            event = await asyncio.wait_for(events.__anext__(), timeout=1)

        assert event.delta == "mine"

    async def test_fan_out_to_all_subscribers(self) -> None:
        bus = InMemoryEventBus()

        async with bus.subscribe("conv-1") as first, bus.subscribe("conv-1") as second:
            assert bus.subscriber_count("conv-1") == 2
            bus.publish("conv-1", _chunk("conv-1", "x"))

            assert (await asyncio.wait_for(first.__anext__(), timeout=1)).delta == "x"
            assert (await asyncio.wait_for(second.__anext__(), timeout=1)).delta == "x"

    async def test_unsubscribe_on_exit(self) -> None:
        bus = InMemoryEventBus()

        async with bus.subscribe("conv-1"):
            assert bus.subscriber_count("conv-1") == 1

        assert bus.subscriber_count("conv-1") == 0

    def test_publish_without_subscribers_is_noop(self) -> None:
        InMemoryEventBus().publish("conv-1", _chunk("conv-1", "lost"))

    async def test_full_queue_drops_events(self) -> None:
        bus = InMemoryEventBus(queue_size=1)

        async with bus.subscribe("conv-1") as events:
            bus.publish("conv-1", _chunk("conv-1", "kept"))
            bus.publish("conv-1", _chunk("conv-1", "dropped"))

            event = await asyncio.wait_for(events.__anext__(), timeout=1)
            assert event.delta == "kept"
            bus.publish("conv-1", _chunk("conv-1", "next"))
            event = await asyncio.wait_for(events.__anext__(), timeout=1)

        assert event.delta == "next"

    async def test_get_times_out_without_ending_subscription(self) -> None:
        bus = InMemoryEventBus()

        async with bus.subscribe("conv-1") as events:
            assert await events.get(timeout=0.01) is None

            bus.publish("conv-1", _chunk("conv-1", "late"))
            event = await events.get(timeout=1)

        assert event.delta == "late"
