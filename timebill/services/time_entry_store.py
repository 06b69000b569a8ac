"""Time Entry Store - manual entries, filtered listing, live totals and deletion.

Invariants:
    - Running or invoiced entries are never deleted (StateError)
    - A running entry's end time and duration are owned by the timer engine
    - Manual durations are whole minutes; when only times are given, the elapsed time
      is rounded half-up to the minute
    - Live totals are priced by resolve_rate(), exactly like invoice lines
    - Does NOT commit: the command host owns the transaction boundary
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.clock import ensure_utc
from timebill.core.errors import StateError, ValidationError
from timebill.core.invoice_snapshot import money, price_entries, summarize_lines
from timebill.core.rounding import elapsed_minutes
from timebill.models import TimeEntry
from timebill.schemas.commands import TimeEntryCreate, TimeEntryFilter, TimeEntryUpdate
from timebill.services.entry_relations import get_or_404, resolve_relations

logger = logging.getLogger(__name__)


def period_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive date range -> [start 00:00 UTC, day after end 00:00 UTC)."""
    if start is not None and end is not None and start > end:
        raise ValidationError(
            f"Period start {start.isoformat()} is after period end {end.isoformat()}",
            field="periodStart",
        )
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = (
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end else None
    )
    return lower, upper


def whole_minutes(start: datetime, end: datetime) -> int:
    return int(elapsed_minutes(start, end).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class TimeEntryStore:
    """TimeEntry reads and manual edits inside the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, entry_id: int) -> TimeEntry:
        return await get_or_404(self.db, TimeEntry, entry_id, "TimeEntry")

    async def list_entries(self, filters: TimeEntryFilter | None = None) -> list[TimeEntry]:
        filters = filters or TimeEntryFilter()
        query = select(TimeEntry)
        for column, value in (
            (TimeEntry.client_id, filters.client_id),
            (TimeEntry.project_id, filters.project_id),
            (TimeEntry.task_id, filters.task_id),
            (TimeEntry.invoice_id, filters.invoice_id),
            (TimeEntry.is_invoiced, filters.is_invoiced),
            (TimeEntry.is_active, filters.is_active),
        ):
            if value is not None:
                query = query.where(column == value)
        lower, upper = period_bounds(filters.start_date, filters.end_date)
        if lower is not None:
            query = query.where(TimeEntry.start_time >= lower)
        if upper is not None:
            query = query.where(TimeEntry.start_time < upper)
        result = await self.db.execute(
            query.order_by(TimeEntry.start_time.desc(), TimeEntry.id.desc())
        )
        return list(result.scalars())

    async def summarize(self, filters: TimeEntryFilter | None = None) -> dict:
        """Live totals for the entries matching filters (running entries count 0)."""
        entries = await self.list_entries(filters)
        lines = price_entries(entries)
        totals = summarize_lines(lines)
        return {
            "entryCount": len(lines),
            "totalMinutes": totals.total_minutes,
            "totalHours": money(totals.total_hours),
            "totalAmount": money(totals.total_amount),
            "hourlyRate": totals.hourly_rate,
            "unratedEntryIds": totals.unrated_entry_ids,
            "lines": [line.to_payload() for line in lines],
        }

    async def create(self, payload: TimeEntryCreate) -> TimeEntry:
        relations = await resolve_relations(
            self.db, payload.client_id, payload.project_id, payload.task_id,
        )
        start = ensure_utc(payload.start_time)
        if payload.duration is not None:
            duration = payload.duration
            end = ensure_utc(payload.end_time) if payload.end_time else start + timedelta(minutes=duration)
        else:
            end = ensure_utc(payload.end_time)
            duration = whole_minutes(start, end)
        entry = TimeEntry(
            client_id=relations.client_id,
            project_id=relations.project_id,
            task_id=relations.task_id,
            description=payload.description,
            start_time=start,
            end_time=end,
            duration=duration,
            is_active=False,
        )
        self.db.add(entry)
        await self.db.flush()
        logger.info("Created manual time entry", extra={"entry_id": entry.id})
        return await self.get(entry.id)

    async def update(self, entry_id: int, payload: TimeEntryUpdate) -> TimeEntry:
        entry = await self.get(entry_id)
        changes = payload.changes()

        if {"client_id", "project_id", "task_id"} & changes.keys():
            relations = await resolve_relations(
                self.db,
                changes.get("client_id", entry.client_id),
                changes.get("project_id", entry.project_id),
                changes.get("task_id", entry.task_id),
            )
            entry.client_id = relations.client_id
            entry.project_id = relations.project_id
            entry.task_id = relations.task_id
        if "description" in changes:
            entry.description = changes["description"]

        if entry.is_active and ({"end_time", "duration"} & changes.keys()):
            raise StateError(f"TimeEntry {entry_id} is running; stop it before editing its duration")
        if changes.get("start_time") is not None:
            entry.start_time = ensure_utc(changes["start_time"])
        if not entry.is_active:
            self._apply_times(entry, changes)

        await self.db.flush()
        return await self.get(entry_id)

    async def delete(self, entry_id: int) -> dict:
        entry = await self.get(entry_id)
        if entry.is_active:
            raise StateError(f"TimeEntry {entry_id} is running and cannot be deleted")
        if entry.is_invoiced:
            raise StateError(
                f"TimeEntry {entry_id} is invoiced (invoice {entry.invoice_id}) and cannot be deleted",
            )
        await self.db.delete(entry)
        await self.db.flush()
        return {"id": entry_id, "deleted": True}

    @staticmethod
    def _apply_times(entry: TimeEntry, changes: dict) -> None:
        start = ensure_utc(entry.start_time)
        if changes.get("duration") is not None:
            entry.duration = changes["duration"]
            if changes.get("end_time") is not None:
                entry.end_time = ensure_utc(changes["end_time"])
            else:
                entry.end_time = start + timedelta(minutes=entry.duration)
        elif changes.get("end_time") is not None or changes.get("start_time") is not None:
            end = ensure_utc(changes.get("end_time") or entry.end_time)
            if end < start:
                raise ValidationError("endTime must not be before startTime", field="endTime")
            entry.end_time = end
            entry.duration = whole_minutes(start, end)
