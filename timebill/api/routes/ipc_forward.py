"""IPC Forwarding Route - HTTP entry point that relays a named command over the bridge.

Invariants:
    - 200 {success: true, data} when the command succeeded
    - 503 {success: false, error} when there is no transport connection, checked first
    - 500 {success: false, error} for any other failure (bad body, business error, timeout)
    - Every response body is a command envelope

Design Decisions:
    - The route only relays: the transport on app.state decides direct vs forwarding
    - Body parsed by hand after the connection check so a bad body never masks a 503
"""

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from timebill.bridge.envelope import failure
from timebill.bridge.forwarding import NOT_AVAILABLE
from timebill.core.errors import TransportTimeout, TransportUnavailable
from timebill.schemas.ipc import IpcForwardRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ipc", tags=["ipc"])


class BadRequestBody(ValueError):
    """Request body is not JSON or not {args: [...]}."""


async def read_args(request: Request) -> list:
    """Positional args from the body; an empty or null body means no args."""
    raw = await request.body()
    if not raw.strip():
        return []
    try:
        obj = json.loads(raw)
    except ValueError as e:
        raise BadRequestBody(f"Request body is not valid JSON: {e}") from e
    if obj is None:
        return []
    try:
        return IpcForwardRequest.model_validate(obj).args
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"]) or "body"
        raise BadRequestBody(f"Invalid request body: {field}: {first['msg']}") from e


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=failure(message))


@router.post("/{channel}")
async def forward_command(channel: str, request: Request):
    """Relay a command to the host and return its envelope."""
    transport = getattr(request.app.state, "transport", None)
    if transport is None or not transport.connected:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, NOT_AVAILABLE)

    try:
        args = await read_args(request)
    except BadRequestBody as e:
        logger.info(f"Rejected IPC request body: {e}", extra={"channel": channel})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    try:
        envelope = await transport.invoke(channel, args)
    except TransportUnavailable as e:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)
    except TransportTimeout as e:
        logger.warning(f"IPC request timed out: {channel}", extra={"channel": channel})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    if not envelope.get("success"):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=envelope,
        )
    return envelope
