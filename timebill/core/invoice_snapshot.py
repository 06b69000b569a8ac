"""Invoice Snapshot - line pricing, totals and the frozen JSON payload stored on invoices.

Invariants:
    - Every line is priced by resolve_rate(), the same function behind live totals
    - amount = hours x rate, rounded half-up to cents, per line; total = sum of lines
    - Lines ordered by (start_time, id); JSON canonical (sorted keys, fixed separators)
    - Money and hours serialized as 2-decimal strings
    - Same inputs -> byte-identical encoded snapshot

Design Decisions:
    - Pure functions over ORM objects (duck-typed): no DB access, testable without a store
    - Stored text validated only on read (parse_snapshot)
"""

import json
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from timebill.core.clock import ensure_utc
from timebill.core.domain_types import RateSource
from timebill.core.errors import ValidationError
from timebill.core.rate_resolver import resolve_rate

CENTS = Decimal("0.01")
DEFAULT_NET_DAYS = 30
VARIES = "Varies"

_NET_RE = re.compile(r"net\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class PricedLine:
    """One invoiced time entry with its resolved rate and amount."""
    entry_id: int
    date: date
    description: str
    duration_minutes: int
    hours: Decimal
    rate: Decimal
    rate_source: RateSource
    amount: Decimal

    def to_payload(self) -> dict:
        return {
            "entryId": self.entry_id,
            "date": self.date.isoformat(),
            "description": self.description,
            "durationMinutes": self.duration_minutes,
            "hours": money(self.hours),
            "rate": money(self.rate),
            "rateSource": self.rate_source.value,
            "amount": money(self.amount),
        }


@dataclass
class InvoiceTotals:
    total_minutes: int = 0
    total_hours: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    hourly_rate: str = "0.00"
    unrated_entry_ids: list[int] = field(default_factory=list)


def money(value: Decimal) -> str:
    return str(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def order_entries(entries: Iterable[Any]) -> list[Any]:
    return sorted(entries, key=lambda e: (ensure_utc(e.start_time), e.id))


def price_entry(entry: Any) -> PricedLine:
    resolution = resolve_rate(entry)
    minutes = int(entry.duration or 0)
    hours = Decimal(minutes) / Decimal(60)
    description = entry.description or (entry.task.name if entry.task else "")
    return PricedLine(
        entry_id=entry.id,
        date=ensure_utc(entry.start_time).date(),
        description=description,
        duration_minutes=minutes,
        hours=hours,
        rate=resolution.rate,
        rate_source=resolution.source,
        amount=(hours * resolution.rate).quantize(CENTS, rounding=ROUND_HALF_UP),
    )


def price_entries(entries: Iterable[Any]) -> list[PricedLine]:
    return [price_entry(e) for e in order_entries(entries)]


def summarize_lines(lines: list[PricedLine]) -> InvoiceTotals:
    """Aggregate priced lines into invoice totals."""
    totals = InvoiceTotals()
    rates = set()
    for line in lines:
        totals.total_minutes += line.duration_minutes
        totals.total_amount += line.amount
        if line.rate_source is RateSource.NONE:
            totals.unrated_entry_ids.append(line.entry_id)
        else:
            rates.add(line.rate)
    totals.total_hours = (Decimal(totals.total_minutes) / Decimal(60)).quantize(
        CENTS, rounding=ROUND_HALF_UP,
    )
    totals.total_amount = totals.total_amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if len(rates) == 1:
        totals.hourly_rate = money(rates.pop())
    elif rates:
        totals.hourly_rate = VARIES
    return totals


def parse_net_days(terms: str | None) -> int:
    """Days until due from payment terms: "Net N" -> N, "Due on receipt" -> 0."""
    if not terms:
        return DEFAULT_NET_DAYS
    if "receipt" in terms.lower():
        return 0
    match = _NET_RE.search(terms)
    if match:
        return int(match.group(1))
    return DEFAULT_NET_DAYS


def compute_due_date(invoice_date: date, terms: str | None) -> date:
    return invoice_date + timedelta(days=parse_net_days(terms))


def build_snapshot(
    *,
    invoice_number: str,
    invoice_date: date,
    due_date: date,
    terms: str | None,
    period_start: date,
    period_end: date,
    client: Any,
    company: dict[str, str | None],
    lines: list[PricedLine],
    totals: InvoiceTotals,
) -> dict:
    """Assemble the snapshot payload for an invoice."""
    return {
        "invoiceNumber": invoice_number,
        "invoiceDate": invoice_date.isoformat(),
        "dueDate": due_date.isoformat(),
        "terms": terms,
        "periodStart": period_start.isoformat(),
        "periodEnd": period_end.isoformat(),
        "clientId": client.id,
        "clientName": client.name,
        "clientEmail": client.email,
        "companyName": company.get("company_name"),
        "companyEmail": company.get("company_email"),
        "companyPhone": company.get("company_phone"),
        "companyWebsite": company.get("company_website"),
        "lineItems": [line.to_payload() for line in lines],
        "totalHours": money(totals.total_hours),
        "hourlyRate": totals.hourly_rate,
        "totalAmount": money(totals.total_amount),
        "unratedEntryIds": list(totals.unrated_entry_ids),
    }


def encode_snapshot(payload: dict) -> str:
    """Canonical JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_snapshot(data: str | None) -> dict:
    try:
        payload = json.loads(data or "")
    except (TypeError, ValueError):
        raise ValidationError("Invalid invoice data format", field="data")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid invoice data format", field="data")
    return payload
