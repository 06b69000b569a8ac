"""Host Socket Endpoint - WS /ws/ipc, where forwarding transports connect to the host.

Invariants:
    - Only served when this process owns a CommandHost; otherwise closed with 1011
    - Frames are handled concurrently by a HostSocketSession; responses may be out of order
    - Text and UTF-8 binary frames are both accepted; other binary frames are dropped and logged
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from timebill.bridge.host_server import HostSocketSession

logger = logging.getLogger(__name__)
router = APIRouter(tags=["ipc"])

UNAVAILABLE_CLOSE_CODE = 1011


@router.websocket("/ws/ipc")
async def host_socket(websocket: WebSocket):
    host = getattr(websocket.app.state, "command_host", None)
    await websocket.accept()
    if host is None:
        await websocket.close(
            code=UNAVAILABLE_CLOSE_CODE, reason="Command host not available",
        )
        return

    session = HostSocketSession(host, websocket.send_text)
    logger.info("Forwarding client connected")
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = _frame_text(message)
            if text is not None:
                session.submit(text)
    except WebSocketDisconnect:
        pass
    finally:
        logger.info("Forwarding client disconnected")
        await session.drain()


def _frame_text(message: dict) -> str | None:
    """Text of a received frame; binary frames must be UTF-8."""
    if message.get("text") is not None:
        return message["text"]
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"Dropping binary frame that is not UTF-8 ({len(data)} bytes)")
        return None
