"""Clock - injectable time source for the engines.

Invariants:
    - now() always returns a timezone-aware UTC datetime
    - Engines never call datetime.now() directly; they receive a Clock

Design Decisions:
    - SystemClock for production, DeterministicClock for tests and scripted scenarios
    - ensure_utc() normalizes naive datetimes read back from SQLite as UTC
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Abstract clock interface."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...


class SystemClock(Clock):
    """Production clock that returns actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Test clock with controlled time.

    now() returns the same value until advance() or set_time() is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._time = ensure_utc(
            fixed_time or datetime(2025, 3, 3, 9, 0, 0, tzinfo=timezone.utc),
        )

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        self._time = ensure_utc(time)

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._time = self._time + timedelta(minutes=minutes, seconds=seconds)
        return self._time


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
