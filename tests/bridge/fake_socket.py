"""Fake socket connections for driving ForwardingTransport without a network.

FakeSocket records sent frames and replays scripted responses; FakeConnector hands
out scripted outcomes (a socket or an exception) per connection attempt and blocks
once the script is exhausted; RecordingSleep records backoff delays without waiting.
"""

import asyncio
import json

from timebill.bridge.forwarding import ConnectionLost

_DROP = object()


class FakeSocket:

    def __init__(self):
        self.sent: list[dict] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, text: str) -> None:
        if self.closed:
            raise ConnectionLost("socket closed")
        self.sent.append(json.loads(text))

    async def recv(self) -> str:
        item = await self._inbox.get()
        if item is _DROP:
            self.closed = True
            raise ConnectionLost("connection dropped")
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_DROP)

    def feed(self, frame) -> None:
        self._inbox.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def reply(self, request: dict, result=None, error: str | None = None) -> None:
        if error is not None:
            self.feed({"id": request["id"], "error": error})
        else:
            self.feed({"id": request["id"], "result": result})

    def drop(self) -> None:
        self._inbox.put_nowait(_DROP)

    def fail(self, exc: BaseException) -> None:
        """Make the next recv() raise exc instead of returning a frame."""
        self._inbox.put_nowait(exc)

    async def wait_for_sent(self, count: int, timeout: float = 1.0) -> list[dict]:
        async def _poll():
            while len(self.sent) < count:
                await asyncio.sleep(0)
        await asyncio.wait_for(_poll(), timeout)
        return self.sent


class FakeConnector:

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.urls: list[str] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.calls += 1
        self.urls.append(url)
        if not self.outcomes:
            await asyncio.Event().wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


def refused(count: int) -> list[ConnectionLost]:
    return [ConnectionLost("connection refused") for _ in range(count)]
