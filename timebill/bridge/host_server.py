"""Host Socket Session - serves request frames from one socket against a CommandHost.

Invariants:
    - Each frame is handled in its own task: responses may leave out of order
    - Writes to the socket are serialized (one frame at a time)
    - Every well-formed request gets exactly one response frame with the same id
    - Frames without a readable id are logged and dropped

Design Decisions:
    - Socket-agnostic: takes a send coroutine, so the Starlette endpoint and tests share it
    - Commands already running finish after a disconnect; their responses are discarded
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, TYPE_CHECKING

from timebill.bridge.envelope import FrameError, decode_request, encode_response, failure

if TYPE_CHECKING:
    from timebill.services.command_host import CommandHost

logger = logging.getLogger(__name__)


class HostSocketSession:
    """One connected forwarding client."""

    def __init__(self, host: "CommandHost", send: Callable[[str], Awaitable[None]]):
        self._host = host
        self._send = send
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, text: str) -> asyncio.Task:
        """Start handling a frame without waiting for it."""
        task = asyncio.create_task(self.handle_frame(text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_frame(self, text: str) -> None:
        try:
            request = decode_request(text)
        except FrameError as e:
            request_id = _peek_id(text)
            logger.warning(f"Rejected frame: {e}", extra={"request_id": request_id})
            if request_id is None:
                return
            await self._write(encode_response(request_id, failure(str(e))))
            return

        envelope = await self._host.dispatch(
            request.channel, request.args, request_id=str(request.id),
        )
        await self._write(encode_response(request.id, envelope))

    async def drain(self) -> None:
        """Wait for every frame still being handled."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _write(self, text: str) -> None:
        async with self._send_lock:
            try:
                await self._send(text)
            except Exception as e:
                logger.warning(f"Could not deliver response frame: {e}")


def _peek_id(text: str | bytes):
    try:
        obj = json.loads(text)
    except (TypeError, ValueError):
        return None
    if isinstance(obj, dict) and isinstance(obj.get("id"), (str, int)):
        return obj["id"]
    return None
