"""Invoice Engine - turns uninvoiced time into invoices and keeps their snapshots stable.

Invariants:
    - generate selects only the client's stopped, uninvoiced entries started in the
      inclusive period; an empty selection is a ValidationError
    - Invoice insert, entry marking and snapshot write happen in one transaction
    - invoice_number is INV-{YYYYMMDD of period start}-{seq:03d}, unique, never changed
    - A number collision rolls the transaction back and reruns the whole operation,
      at most MAX_NUMBER_ATTEMPTS times, then PersistenceError
    - regenerate reads only entries already linked to the invoice; same inputs give
      byte-identical data, and an unchanged snapshot is not rewritten
    - delete unlinks entries before removing the invoice, in one transaction
    - Every entry marked invoiced is listed in the snapshot line items, and vice versa

Design Decisions:
    - Pricing delegated to core.invoice_snapshot (resolve_rate per line): live totals and
      invoices never disagree
    - Clock injected: invoice date and due date are reproducible in tests
    - Does NOT commit: the command host owns the transaction boundary
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.clock import Clock, ensure_utc
from timebill.core.domain_types import InvoiceStatus
from timebill.core.errors import ErrorContext, PersistenceError, ValidationError
from timebill.core.invoice_filename import create_invoice_filename
from timebill.core.invoice_numbering import format_invoice_number, next_sequence, number_prefix
from timebill.core.invoice_snapshot import (
    build_snapshot, compute_due_date, encode_snapshot, parse_snapshot,
    price_entries, summarize_lines,
)
from timebill.models import Client, Invoice, TimeEntry
from timebill.schemas.commands import InvoiceFilter
from timebill.services.entry_relations import get_or_404
from timebill.services.settings_store import COMPANY_KEYS, INVOICE_TERMS, SettingsStore
from timebill.services.time_entry_store import period_bounds

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


class InvoiceEngine:
    """Generation, regeneration, deletion and status of invoices."""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock
        self.settings = SettingsStore(db)

    # ─── Generation ────────────────────────────────────────────────

    async def generate(self, client_id: int, period_start: date, period_end: date) -> Invoice:
        """Invoice every uninvoiced, stopped entry of a client in [period_start, period_end]."""
        lower, upper = period_bounds(period_start, period_end)

        async def select_entries() -> tuple[Client, list[TimeEntry]]:
            client = await get_or_404(self.db, Client, client_id)
            result = await self.db.execute(
                select(TimeEntry)
                .where(
                    TimeEntry.client_id == client_id,
                    TimeEntry.is_invoiced.is_(False),
                    TimeEntry.is_active.is_(False),
                    TimeEntry.start_time >= lower,
                    TimeEntry.start_time < upper,
                )
                .execution_options(populate_existing=True)
            )
            entries = list(result.scalars())
            if not entries:
                raise ValidationError(
                    f"No uninvoiced time entries for client {client_id} between "
                    f"{period_start.isoformat()} and {period_end.isoformat()}",
                )
            return client, entries

        return await self._create_with_retry(select_entries, period_start, period_end)

    async def generate_from_selected(self, entry_ids: list[int]) -> Invoice:
        """Invoice an explicit selection of entries belonging to one client."""
        if not isinstance(entry_ids, list) or not entry_ids:
            raise ValidationError("Select at least one time entry", field="entryIds")
        unique_ids = list(dict.fromkeys(entry_ids))

        async def select_entries() -> tuple[Client, list[TimeEntry]]:
            entries = [
                await get_or_404(self.db, TimeEntry, entry_id, "TimeEntry")
                for entry_id in unique_ids
            ]
            invoiced = [e.id for e in entries if e.is_invoiced]
            if invoiced:
                raise ValidationError(f"Time entries already invoiced: {invoiced}")
            running = [e.id for e in entries if e.is_active]
            if running:
                raise ValidationError(f"Time entries still running: {running}")
            client_ids = {e.client_id for e in entries}
            if None in client_ids:
                raise ValidationError("Every selected time entry must be assigned to a client")
            if len(client_ids) > 1:
                raise ValidationError(
                    "Selected time entries belong to multiple clients; "
                    "an invoice can only cover one client",
                )
            client = await get_or_404(self.db, Client, client_ids.pop())
            return client, entries

        return await self._create_with_retry(select_entries, None, None)

    async def _create_with_retry(self, select_entries, period_start, period_end) -> Invoice:
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            client, entries = await select_entries()
            start, end = period_start, period_end
            if start is None:
                days = [ensure_utc(e.start_time).date() for e in entries]
                start, end = min(days), max(days)
            try:
                invoice = await self._create(client, entries, start, end)
            except IntegrityError as e:
                await self.db.rollback()
                logger.warning(
                    f"Invoice number collision, retrying: {e.orig}",
                    extra={"attempt": attempt},
                )
                continue
            logger.info(
                f"Generated invoice {invoice.invoice_number} with {len(entries)} entries",
                extra={"invoice_id": invoice.id},
            )
            return await self.get(invoice.id)
        raise PersistenceError(
            f"could not allocate a unique invoice number after {MAX_NUMBER_ATTEMPTS} attempts",
            "insert",
        )

    async def _create(
        self, client: Client, entries: list[TimeEntry], period_start: date, period_end: date,
    ) -> Invoice:
        now = self.clock.now()
        invoice_date = now.date()
        terms = await self.settings.get(INVOICE_TERMS)
        number = await self._next_number(period_start)
        lines = price_entries(entries)
        totals = summarize_lines(lines)
        due_date = compute_due_date(invoice_date, terms)

        invoice = Invoice(
            invoice_number=number,
            client_id=client.id,
            total_amount=totals.total_amount,
            period_start=period_start,
            period_end=period_end,
            status=InvoiceStatus.GENERATED.value,
            due_date=due_date,
            data=encode_snapshot(build_snapshot(
                invoice_number=number,
                invoice_date=invoice_date,
                due_date=due_date,
                terms=terms,
                period_start=period_start,
                period_end=period_end,
                client=client,
                company=await self.settings.get_many(COMPANY_KEYS),
                lines=lines,
                totals=totals,
            )),
            created_at=now,
            updated_at=now,
        )
        self.db.add(invoice)
        await self.db.flush()

        entry_ids = [line.entry_id for line in lines]
        result = await self.db.execute(
            update(TimeEntry)
            .where(
                TimeEntry.id.in_(entry_ids),
                TimeEntry.is_invoiced.is_(False),
                TimeEntry.is_active.is_(False),
            )
            .values(is_invoiced=True, invoice_id=invoice.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(entry_ids):
            raise ValidationError(
                "Some selected time entries changed while the invoice was being created",
            )
        return invoice

    async def _next_number(self, period_start: date) -> str:
        result = await self.db.execute(
            select(Invoice.invoice_number)
            .where(Invoice.invoice_number.like(f"{number_prefix(period_start)}%"))
        )
        return format_invoice_number(
            period_start, next_sequence(list(result.scalars()), period_start),
        )

    # ─── Regeneration & deletion ───────────────────────────────────

    async def regenerate(self, invoice_id: int) -> Invoice:
        """Recompute snapshot and total from the entries currently linked to the invoice."""
        invoice = await self.get(invoice_id)
        entries = await self._linked_entries(invoice_id)
        lines = price_entries(entries)
        totals = summarize_lines(lines)
        terms = await self.settings.get(INVOICE_TERMS)

        data = encode_snapshot(build_snapshot(
            invoice_number=invoice.invoice_number,
            invoice_date=ensure_utc(invoice.created_at).date(),
            due_date=invoice.due_date,
            terms=terms,
            period_start=invoice.period_start,
            period_end=invoice.period_end,
            client=invoice.client,
            company=await self.settings.get_many(COMPANY_KEYS),
            lines=lines,
            totals=totals,
        ))
        if data == invoice.data and totals.total_amount == invoice.total_amount:
            logger.info("Invoice snapshot unchanged", extra={"invoice_id": invoice_id})
            return invoice

        invoice.data = data
        invoice.total_amount = totals.total_amount
        invoice.updated_at = self.clock.now()
        await self.db.flush()
        logger.info(
            f"Regenerated invoice {invoice.invoice_number}", extra={"invoice_id": invoice_id},
        )
        return await self.get(invoice_id)

    async def delete(self, invoice_id: int) -> dict:
        invoice = await self.get(invoice_id)
        result = await self.db.execute(
            update(TimeEntry)
            .where(TimeEntry.invoice_id == invoice_id)
            .values(is_invoiced=False, invoice_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.delete(invoice)
        await self.db.flush()
        logger.info(
            f"Deleted invoice {invoice.invoice_number}, unlinked {result.rowcount} entries",
            extra={"invoice_id": invoice_id},
        )
        return {"id": invoice_id, "deleted": True, "unlinkedEntries": result.rowcount}

    # ─── Reads & status ────────────────────────────────────────────

    async def get(self, invoice_id: int) -> Invoice:
        return await get_or_404(self.db, Invoice, invoice_id, "Invoice")

    async def list_invoices(self, filters: InvoiceFilter | None = None) -> list[Invoice]:
        filters = filters or InvoiceFilter()
        query = select(Invoice)
        if filters.client_id is not None:
            query = query.where(Invoice.client_id == filters.client_id)
        if filters.status is not None:
            query = query.where(Invoice.status == filters.status.value)
        result = await self.db.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        )
        return list(result.scalars())

    async def get_snapshot(self, invoice_id: int) -> dict:
        invoice = await self.get(invoice_id)
        try:
            return parse_snapshot(invoice.data)
        except ValidationError as e:
            e.context.invoice_id = invoice_id
            raise

    async def update_status(self, invoice_id: int, status: object) -> Invoice:
        try:
            new_status = InvoiceStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in InvoiceStatus)
            raise ValidationError(
                f"Invalid invoice status: {status}. Must be one of: {allowed}",
                field="status",
                context=ErrorContext(invoice_id=invoice_id),
            )
        invoice = await self.get(invoice_id)
        invoice.status = new_status.value
        invoice.updated_at = self.clock.now()
        await self.db.flush()
        return await self.get(invoice_id)

    async def filename(self, invoice_id: int, include_timestamp: bool = False) -> str:
        invoice = await self.get(invoice_id)
        client_name = invoice.client.name if invoice.client else None
        timestamp_ms = (
            int(self.clock.now().timestamp() * 1000) if include_timestamp else None
        )
        return create_invoice_filename(
            client_name, invoice.invoice_number, invoice.id, timestamp_ms,
        )

    async def _linked_entries(self, invoice_id: int) -> list[Any]:
        result = await self.db.execute(
            select(TimeEntry)
            .where(TimeEntry.invoice_id == invoice_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

