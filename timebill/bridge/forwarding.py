"""Forwarding Transport - persistent WebSocket link from a detached UI to the command host.

Invariants:
    - One connection per transport instance; several instances may coexist
    - Every request gets a unique correlation id and resolves only on the matching response
    - At most one settlement per id: late or unknown responses are dropped and logged
    - Not connected -> invoke() raises TransportUnavailable immediately (fail fast)
    - Connection lost -> every in-flight request fails with TransportUnavailable; nothing is resent
    - Any failure while reading counts as a lost connection; the supervisor never exits early
    - Reconnect: the first max_immediate_attempts attempts run back to back, every further
      attempt waits backoff_seconds; after an established connection closes, wait
      backoff_seconds and start a fresh cycle

Design Decisions:
    - Supervisor task owns connecting and reading; per-request timeouts are independent
      asyncio.wait_for calls
    - Connector and sleep are injected: tests drive reconnection without real sockets or time
"""

import asyncio
import logging
import uuid
from contextlib import suppress
from typing import Awaitable, Callable, Protocol

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from timebill.bridge.envelope import (
    FrameError, decode_response, encode_request, response_to_envelope,
)
from timebill.bridge.status_channel import StatusChannel
from timebill.core.domain_types import ConnectionState
from timebill.core.errors import ErrorContext, TransportTimeout, TransportUnavailable

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "WebSocket connection to host not available"


class ConnectionLost(Exception):
    """The socket could not be opened or was closed."""


class SocketConnection(Protocol):
    async def send(self, text: str) -> None: ...

    async def recv(self) -> str: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[SocketConnection]]


class WebSocketConnection:
    """SocketConnection over a `websockets` client connection."""

    def __init__(self, ws):
        self._ws = ws

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except (ConnectionClosed, WebSocketException, OSError) as e:
            raise ConnectionLost(str(e)) from e

    async def recv(self) -> str:
        try:
            message = await self._ws.recv()
        except (ConnectionClosed, WebSocketException, OSError) as e:
            raise ConnectionLost(str(e)) from e
        if isinstance(message, bytes):
            return message.decode("utf-8")
        return message

    async def close(self) -> None:
        await self._ws.close()


async def websocket_connector(url: str) -> WebSocketConnection:
    try:
        ws = await connect(url, open_timeout=5)
    except (WebSocketException, OSError, asyncio.TimeoutError) as e:
        raise ConnectionLost(str(e)) from e
    return WebSocketConnection(ws)


class ForwardingTransport:
    """CommandTransport that forwards requests to a remote host over WebSocket."""

    def __init__(
        self,
        url: str,
        connector: Connector = websocket_connector,
        request_timeout: float = 5.0,
        max_immediate_attempts: int = 3,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self.url = url
        self.status = StatusChannel("forwarding-transport")
        self._connector = connector
        self._request_timeout = request_timeout
        self._max_immediate_attempts = max_immediate_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._id_factory = id_factory
        self._pending: dict[str, asyncio.Future] = {}
        self._conn: SocketConnection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._connected_event = asyncio.Event()
        self._supervisor: asyncio.Task | None = None
        self._closing = False

    # ─── Lifecycle ─────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._conn is not None and self._state is ConnectionState.CONNECTED

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        if self._supervisor and not self._supervisor.done():
            return
        self._closing = False
        self._supervisor = asyncio.create_task(
            self._supervise(), name=f"forwarding-supervisor:{self.url}",
        )

    async def wait_connected(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._connected_event.wait(), timeout)

    async def close(self) -> None:
        self._closing = True
        conn, self._conn = self._conn, None
        if self._supervisor:
            self._supervisor.cancel()
            with suppress(asyncio.CancelledError):
                await self._supervisor
            self._supervisor = None
        if conn is not None:
            with suppress(ConnectionLost, OSError):
                await conn.close()
        self._fail_pending("Transport closed")
        self._set_state(ConnectionState.CLOSED)

    # ─── Requests ──────────────────────────────────────────────────

    async def invoke(self, channel: str, args: list) -> dict:
        conn = self._conn
        if conn is None or not self.connected:
            raise TransportUnavailable(NOT_AVAILABLE, ErrorContext(channel=channel))

        request_id = self._id_factory()
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            try:
                await conn.send(encode_request(request_id, channel, list(args or [])))
            except ConnectionLost as e:
                raise TransportUnavailable(
                    NOT_AVAILABLE, ErrorContext(channel=channel, request_id=request_id),
                ) from e
            try:
                return await asyncio.wait_for(future, self._request_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Request timed out: {channel}",
                    extra={"channel": channel, "request_id": request_id},
                )
                raise TransportTimeout(
                    channel, self._request_timeout,
                    ErrorContext(channel=channel, request_id=request_id),
                )
        finally:
            self._pending.pop(request_id, None)

    # ─── Supervisor ────────────────────────────────────────────────

    async def _supervise(self) -> None:
        failures = 0
        while not self._closing:
            self._set_state(ConnectionState.CONNECTING, attempt=failures + 1)
            try:
                conn = await self._connector(self.url)
            except (ConnectionLost, OSError) as e:
                failures += 1
                logger.warning(
                    f"Connection attempt to {self.url} failed: {e}",
                    extra={"attempt": failures},
                )
                self._set_state(ConnectionState.DISCONNECTED, attempt=failures)
                if failures >= self._max_immediate_attempts:
                    await self._sleep(self._backoff_seconds)
                continue

            failures = 0
            self._conn = conn
            self._set_state(ConnectionState.CONNECTED)
            try:
                await self._read_loop(conn)
            except Exception:
                logger.exception(f"Read loop on {self.url} failed, reconnecting")
                with suppress(ConnectionLost, OSError):
                    await conn.close()
            finally:
                self._conn = None
                self._fail_pending(
                    "Transport closed" if self._closing else "Connection to host lost",
                )
            if self._closing:
                break
            self._set_state(ConnectionState.DISCONNECTED)
            await self._sleep(self._backoff_seconds)

    async def _read_loop(self, conn: SocketConnection) -> None:
        while True:
            try:
                text = await conn.recv()
            except ConnectionLost as e:
                logger.warning(f"Connection to {self.url} lost: {e}")
                return
            try:
                response = decode_response(text)
            except FrameError as e:
                logger.warning(f"Dropping malformed response frame: {e}")
                continue
            future = self._pending.get(response.id)
            if future is None or future.done():
                logger.info(
                    "Dropping late or unknown response",
                    extra={"request_id": response.id},
                )
                continue
            future.set_result(response_to_envelope(response))

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for request_id, future in pending.items():
            if not future.done():
                future.set_exception(TransportUnavailable(
                    reason, ErrorContext(request_id=request_id),
                ))

    def _set_state(self, state: ConnectionState, **details) -> None:
        self._state = state
        if state is ConnectionState.CONNECTED:
            self._connected_event.set()
        else:
            self._connected_event.clear()
        logger.info(
            f"Forwarding transport {state.value}",
            extra={"state": state.value, "attempt": details.get("attempt")},
        )
        self.status.publish("connection", state=state.value, url=self.url, **details)
