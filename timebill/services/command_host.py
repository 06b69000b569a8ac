"""Command Host - host-side dispatcher that turns a named command into an envelope.

Invariants:
    - One DB session (one transaction) per command, committed only on success
    - Mutating commands are serialized through one asyncio.Lock; reads run freely
    - dispatch() never raises: TimebillError -> {success: false, error: message};
      anything else is logged with traceback and reported as "An unexpected error occurred"
    - Timer status events are published only after the command committed

Design Decisions:
    - Session factory injected (DatabaseSessionManager.session in production): SQLAlchemy
      failures arrive here already mapped to PersistenceError
    - Events go through a StatusChannel so UIs subscribe without polling getActive
"""

import asyncio
import logging
from contextlib import nullcontext
from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.bridge.envelope import failure, success
from timebill.bridge.status_channel import StatusChannel
from timebill.config import Settings
from timebill.core.clock import Clock
from timebill.core.errors import TimebillError
from timebill.services.command_router import (
    READ_ONLY_CHANNELS, TIMER_CHANNELS, CommandRouter,
)

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class CommandHost:
    """Owns sessions, the write lock and timer events for every command."""

    def __init__(self, session_factory: SessionFactory, clock: Clock, settings: Settings):
        self._session_factory = session_factory
        self._clock = clock
        self._settings = settings
        self._write_lock = asyncio.Lock()
        self.events = StatusChannel("timer-events")

    async def dispatch(
        self, channel: str, args: list | None = None, request_id: str | None = None,
    ) -> dict:
        args = list(args or [])
        lock = nullcontext() if channel in READ_ONLY_CHANNELS else self._write_lock
        try:
            async with lock:
                async with self._session_factory() as db:
                    router = CommandRouter(db, self._clock, self._settings)
                    data = await router.execute(channel, args)
                    await db.commit()
        except TimebillError as e:
            logger.info(
                f"Command {channel} failed: {e.message}",
                extra={
                    "channel": channel, "request_id": request_id, "error_code": e.code,
                },
            )
            return e.to_envelope()
        except Exception:
            logger.exception(
                f"Unexpected error in command {channel}",
                extra={"channel": channel, "request_id": request_id},
            )
            return failure(UNEXPECTED_ERROR)

        if channel in TIMER_CHANNELS:
            self.events.publish(
                "timer", action=channel.split(":", 1)[1], entry=data,
            )
        return success(data)
