"""IPC Schemas - wire frames of the command bridge and the HTTP forwarding body.

Invariants:
    - Request frame: {id, channel, args}; channel names a "<resource>:<verb>" command
    - Response frame: exactly one of result / error is meaningful
    - Legacy responses carrying both keys with error = null are accepted as success

Design Decisions:
    - Frames validated with Pydantic at the socket boundary; envelopes stay plain dicts
"""

from typing import Any

from pydantic import BaseModel, Field


class WireRequest(BaseModel):
    """Request frame sent to the host."""
    id: str | int
    channel: str = Field(min_length=1, max_length=100)
    args: list[Any] = Field(default_factory=list)


class WireResponse(BaseModel):
    """Response frame sent back by the host."""
    id: str | int
    result: Any = None
    error: str | None = None
    has_error: bool = False


class IpcForwardRequest(BaseModel):
    """Body of POST /api/ipc/{channel}."""
    args: list[Any] = Field(default_factory=list)
