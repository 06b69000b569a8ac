"""Command Transport - the one interface the UI side uses to reach the command host.

Invariants:
    - invoke() returns an envelope for business outcomes (success or failure)
    - Transport-level problems raise TransportUnavailable / TransportTimeout instead
    - A transport is chosen once at process start and owns its own lifecycle

Design Decisions:
    - typing.Protocol over an ABC: DirectTransport and ForwardingTransport share no code
    - DirectTransport calls the host in the same event loop; connected between start() and close()
"""

from typing import Protocol, TYPE_CHECKING, runtime_checkable

from timebill.bridge.status_channel import StatusChannel
from timebill.core.domain_types import ConnectionState
from timebill.core.errors import TransportUnavailable

if TYPE_CHECKING:
    from timebill.services.command_host import CommandHost


@runtime_checkable
class CommandTransport(Protocol):
    status: StatusChannel

    @property
    def connected(self) -> bool: ...

    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def invoke(self, channel: str, args: list) -> dict: ...


class DirectTransport:
    """Co-located UI: dispatch straight into the CommandHost."""

    def __init__(self, host: "CommandHost"):
        self._host = host
        self.status = StatusChannel("direct-transport")
        self._started = False

    @property
    def connected(self) -> bool:
        return self._started

    async def start(self) -> None:
        self._started = True
        self.status.publish("connection", state=ConnectionState.CONNECTED.value)

    async def close(self) -> None:
        self._started = False
        self.status.publish("connection", state=ConnectionState.CLOSED.value)

    async def invoke(self, channel: str, args: list) -> dict:
        if not self._started:
            raise TransportUnavailable("Command host transport is not started")
        return await self._host.dispatch(channel, list(args or []))
