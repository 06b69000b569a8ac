"""Envelope Codec - command results and the JSON frames that carry them.

Invariants:
    - Envelope: {"success": true, "data": ...} or {"success": false, "error": "<message>"}
    - Response frame: {"id", "result"} on success, {"id", "error"} on failure, never both
    - decode_response() also accepts legacy {"id", "result", "error": null} frames
    - Malformed frames raise FrameError, never return a half-parsed value

Design Decisions:
    - JSON text in and out: the forwarding socket and the host session share one codec
"""

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from timebill.schemas.ipc import WireRequest, WireResponse


class FrameError(ValueError):
    """Frame text is not valid JSON or does not have the frame shape."""


def success(data: Any) -> dict:
    return {"success": True, "data": data}


def failure(message: str) -> dict:
    return {"success": False, "error": message}


def encode_request(request_id: str | int, channel: str, args: list | tuple) -> str:
    return json.dumps({"id": request_id, "channel": channel, "args": list(args)})


def decode_request(text: str | bytes) -> WireRequest:
    obj = _load(text)
    try:
        return WireRequest.model_validate(obj)
    except PydanticValidationError as e:
        raise FrameError(f"Malformed request frame: {e.errors()[0]['msg']}") from e


def encode_response(request_id: str | int, envelope: dict) -> str:
    """Turn a command envelope into its response frame."""
    if envelope.get("success"):
        return json.dumps({"id": request_id, "result": envelope.get("data")})
    return json.dumps({"id": request_id, "error": str(envelope.get("error"))})


def decode_response(text: str | bytes) -> WireResponse:
    obj = _load(text)
    if "id" not in obj:
        raise FrameError("Malformed response frame: missing id")
    error = obj.get("error")
    try:
        if error is not None:
            if not isinstance(error, str):
                error = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            return WireResponse(id=obj["id"], error=error, has_error=True)
        return WireResponse(id=obj["id"], result=obj.get("result"))
    except PydanticValidationError as e:
        raise FrameError(f"Malformed response frame: {e.errors()[0]['msg']}") from e


def response_to_envelope(response: WireResponse) -> dict:
    if response.has_error:
        return failure(response.error)
    return success(response.result)


def _load(text: str | bytes) -> dict:
    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as e:
        raise FrameError(f"Frame is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise FrameError("Frame must be a JSON object")
    return obj
