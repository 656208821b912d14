"""Push channel from the chat service to UI subscribers.

The service only needs ``publish(topic, event)``; topics are conversation
ids. Delivery is fire-and-forget with no acknowledgement and no replay: a
subscriber that was not listening re-reads the conversation store.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol

from proma.chat.models import ChatEvent

logger = logging.getLogger(__name__)

# Bound per-subscriber backlog; a stalled subscriber drops events
DEFAULT_QUEUE_SIZE = 1000


class EventPublisher(Protocol):
    """One-directional message bus with conversation-scoped topics."""

    def publish(self, topic: str, event: ChatEvent) -> None:
        """Deliver an event to every current subscriber of ``topic``."""
        ...


class Subscription:
    """Events delivered to one subscriber, in publish order.

    Iterating waits indefinitely; ``get`` gives up after a timeout so the
    caller can check other conditions and keep reading afterwards.
    """

    def __init__(self, queue: "asyncio.Queue[ChatEvent]") -> None:
        self._queue = queue

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChatEvent:
        return await self._queue.get()

    async def get(self, timeout: float) -> Optional[ChatEvent]:
        """Next event, or None if nothing arrives within ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None


class InMemoryEventBus:
    """In-process ``EventPublisher`` backed by one asyncio.Queue per subscriber.

    Example:
        >>> bus = InMemoryEventBus()
        >>> async with bus.subscribe("conv-1") as events:  # doctest: +SKIP
        ...     async for event in events:
        ...         print(event.type)
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def publish(self, topic: str, event: ChatEvent) -> None:
        for queue in list(self._subscribers.get(topic, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event.type} event for slow subscriber on {topic}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    @asynccontextmanager
    async def subscribe(self, topic: str) -> AsyncIterator[Subscription]:
        """Subscribe to a topic for the duration of the context.

        Yields:
            Subscription over events published after subscribing
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[topic].add(queue)

        try:
            yield Subscription(queue)
        finally:
            self._subscribers[topic].discard(queue)
            if not self._subscribers[topic]:
                del self._subscribers[topic]
