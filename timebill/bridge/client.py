"""Bridge Client - UI-side facade over whichever CommandTransport is configured.

invoke() returns the command's data, raises CommandFailed with the host's message
verbatim on a failure envelope, and lets TransportUnavailable / TransportTimeout
(both retryable) propagate untouched.
"""

import logging
from typing import Any

from timebill.bridge.transport import CommandTransport
from timebill.core.errors import CommandFailed

logger = logging.getLogger(__name__)


class BridgeClient:

    def __init__(self, transport: CommandTransport):
        self.transport = transport

    @property
    def connected(self) -> bool:
        return self.transport.connected

    async def invoke(self, channel: str, *args: Any) -> Any:
        envelope = await self.transport.invoke(channel, list(args))
        if envelope.get("success"):
            return envelope.get("data")
        message = envelope.get("error") or "Unknown error"
        logger.debug(f"Command {channel} failed: {message}", extra={"channel": channel})
        raise CommandFailed(message, channel=channel)
