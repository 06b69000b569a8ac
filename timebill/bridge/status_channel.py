"""Status Channel - bounded in-process pub/sub for connection and timer events.

Invariants:
    - Each subscriber has its own bounded queue; when full the oldest event is dropped
    - Subscriber count is bounded; subscribe() beyond the limit raises RuntimeError
    - publish() never blocks and never fails because of a slow subscriber
    - unsubscribe() (or leaving the `with` block) removes the subscriber immediately

Design Decisions:
    - asyncio.Queue per subscriber instead of callbacks: consumers pull at their own pace
    - Explicit Subscription handle: no leaked listeners across reconnects
"""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
DEFAULT_MAX_SUBSCRIBERS = 32


class Subscription:
    """Handle returned by StatusChannel.subscribe()."""

    def __init__(self, channel: "StatusChannel", maxsize: int):
        self._channel = channel
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def _offer(self, event: dict) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(event)

    async def get(self) -> dict:
        return await self.queue.get()

    def get_nowait(self) -> dict:
        return self.queue.get_nowait()

    def drain(self) -> list[dict]:
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events

    def unsubscribe(self) -> None:
        self._channel._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class StatusChannel:
    """Fan-out of status events to bounded subscriber queues."""

    def __init__(
        self, name: str, queue_size: int = DEFAULT_QUEUE_SIZE,
        max_subscribers: int = DEFAULT_MAX_SUBSCRIBERS,
    ):
        self.name = name
        self._queue_size = queue_size
        self._max_subscribers = max_subscribers
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        if len(self._subscribers) >= self._max_subscribers:
            raise RuntimeError(
                f"Status channel '{self.name}' has reached {self._max_subscribers} subscribers",
            )
        subscription = Subscription(self, self._queue_size)
        self._subscribers.append(subscription)
        return subscription

    def publish(self, event_type: str, **payload: Any) -> dict:
        event = {"type": event_type, **payload}
        for subscription in list(self._subscribers):
            subscription._offer(event)
        logger.debug(
            f"Status event on {self.name}: {event_type}",
            extra={"state": payload.get("state")},
        )
        return event

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
