"""Timer Engine - single-active-timer lifecycle with rounded durations.

Invariants:
    - At most one running entry, ever: pre-check inside the transaction plus the partial
      unique index; losing a concurrent race surfaces as ConflictError, never a second timer
    - A second start while a timer runs is rejected (ConflictError), never auto-stopped
    - stop: duration = round_minutes(carried + elapsed, unit); positive work is >= one unit
    - resume: ConflictError if another entry runs, StateError if running or invoiced
    - get_active() never fails

Design Decisions:
    - Clock injected: elapsed time is testable without sleeping
    - ResumePolicy is named and configured (accumulate by default)
    - Rounding unit resolution: explicit argument -> timer_rounding setting -> configured default
    - Does NOT commit: the command host owns the transaction boundary
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.clock import Clock, ensure_utc
from timebill.core.domain_types import ResumePolicy, RoundingUnit
from timebill.core.errors import ConflictError, ErrorContext, StateError
from timebill.core.rounding import elapsed_minutes, parse_rounding_unit, round_minutes
from timebill.models import TimeEntry
from timebill.schemas.commands import TimerStart
from timebill.services.entry_relations import get_or_404, resolve_relations
from timebill.services.settings_store import TIMER_ROUNDING, SettingsStore

logger = logging.getLogger(__name__)


class TimerEngine:
    """Start/stop/resume for the single running timer."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        default_rounding_unit: RoundingUnit = RoundingUnit.FIFTEEN,
        resume_policy: ResumePolicy = ResumePolicy.ACCUMULATE,
    ):
        self.db = db
        self.clock = clock
        self.default_rounding_unit = default_rounding_unit
        self.resume_policy = resume_policy
        self.settings = SettingsStore(db)

    async def get_active(self) -> TimeEntry | None:
        result = await self.db.execute(
            select(TimeEntry).where(TimeEntry.is_active.is_(True))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def start(self, payload: TimerStart | None = None) -> TimeEntry:
        payload = payload or TimerStart()
        relations = await resolve_relations(
            self.db, payload.client_id, payload.project_id, payload.task_id,
        )
        running = await self.get_active()
        if running is not None:
            raise ConflictError(
                f"A timer is already running (entry {running.id}); stop it first",
                ErrorContext(entry_id=running.id),
            )

        entry = TimeEntry(
            client_id=relations.client_id,
            project_id=relations.project_id,
            task_id=relations.task_id,
            description=payload.description,
            start_time=self.clock.now(),
            is_active=True,
            carried_minutes=0,
        )
        self.db.add(entry)
        await self._flush_activation()
        await self.settings.record_last_used(
            relations.client_id, relations.project_id, relations.task_id,
        )
        logger.info("Timer started", extra={"entry_id": entry.id})
        return await self._reload(entry.id)

    async def stop(self, entry_id: int, rounding_unit: object = None) -> TimeEntry:
        unit = await self._rounding_unit(rounding_unit)
        entry = await self._reload(entry_id)
        if not entry.is_active:
            raise StateError(
                f"TimeEntry {entry_id} is not running", ErrorContext(entry_id=entry_id),
            )

        now = self.clock.now()
        raw = Decimal(entry.carried_minutes or 0) + elapsed_minutes(
            ensure_utc(entry.start_time), now,
        )
        entry.end_time = now
        entry.duration = round_minutes(raw, unit)
        entry.is_active = False
        await self.db.flush()
        logger.info(
            f"Timer stopped: raw {raw:.2f} min -> {entry.duration} min (unit {int(unit)})",
            extra={"entry_id": entry_id},
        )
        return await self._reload(entry_id)

    async def resume(self, entry_id: int) -> TimeEntry:
        entry = await self._reload(entry_id)
        if entry.is_active:
            raise StateError(
                f"TimeEntry {entry_id} is already running", ErrorContext(entry_id=entry_id),
            )
        if entry.is_invoiced:
            raise StateError(
                f"TimeEntry {entry_id} is invoiced and cannot be resumed",
                ErrorContext(entry_id=entry_id),
            )
        running = await self.get_active()
        if running is not None:
            raise ConflictError(
                f"Another timer is already running (entry {running.id})",
                ErrorContext(entry_id=running.id),
            )

        if self.resume_policy is ResumePolicy.ACCUMULATE:
            entry.carried_minutes = entry.duration or 0
        else:
            entry.carried_minutes = 0
        entry.start_time = self.clock.now()
        entry.end_time = None
        entry.duration = None
        entry.is_active = True
        await self._flush_activation()
        logger.info(
            f"Timer resumed ({self.resume_policy.value}, carried {entry.carried_minutes} min)",
            extra={"entry_id": entry_id},
        )
        return await self._reload(entry_id)

    async def _flush_activation(self) -> None:
        """Flush an activating change; the single-active index turns a lost race into a conflict."""
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Concurrent timer activation rejected: {e.orig}")
            raise ConflictError("A timer is already running; stop it first")

    async def _rounding_unit(self, explicit: object) -> RoundingUnit:
        if explicit is not None:
            return parse_rounding_unit(explicit)
        stored = await self.settings.get(TIMER_ROUNDING)
        if stored:
            return parse_rounding_unit(stored)
        return self.default_rounding_unit

    async def _reload(self, entry_id: int) -> TimeEntry:
        return await get_or_404(self.db, TimeEntry, entry_id, "TimeEntry")
