"""Time Entry Store - manual entries, filters, live totals and deletion rules.

Tests cover:
    - Manual entries from start+duration or start+end (rounded to whole minutes)
    - Relations inferred upward and checked for consistency
    - Filters by client, invoiced flag and inclusive date range
    - summarize() prices lines exactly like invoices
    - Running and invoiced entries cannot be deleted; running durations cannot be edited
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from timebill.core.clock import ensure_utc
from timebill.core.errors import NotFoundError, StateError, ValidationError
from timebill.schemas.commands import TimeEntryCreate, TimeEntryFilter, TimeEntryUpdate
from timebill.services.invoice_engine import InvoiceEngine
from timebill.services.time_entry_store import TimeEntryStore, period_bounds
from tests.conftest import T0


async def test_manual_entry_from_duration(test_db, catalog):
    entry = await TimeEntryStore(test_db).create(
        TimeEntryCreate(task_id=catalog.checkout, start_time=T0, duration=90),
    )
    await test_db.commit()

    assert entry.duration == 90
    assert ensure_utc(entry.end_time) == T0 + timedelta(minutes=90)
    assert (entry.client_id, entry.project_id) == (catalog.acme, catalog.ecommerce)
    assert not entry.is_active


async def test_manual_entry_from_end_time_rounds_to_minutes(test_db, catalog):
    entry = await TimeEntryStore(test_db).create(TimeEntryCreate(
        client_id=catalog.acme, start_time=T0, end_time=T0 + timedelta(minutes=44, seconds=30),
    ))
    assert entry.duration == 45


async def test_manual_entry_relation_mismatch(test_db, catalog):
    with pytest.raises(ValidationError):
        await TimeEntryStore(test_db).create(TimeEntryCreate(
            client_id=catalog.globex, project_id=catalog.ecommerce, start_time=T0, duration=10,
        ))


async def test_update_times_recomputes_duration(test_db, catalog, make_entry):
    entry_id = await make_entry(client_id=catalog.acme, minutes=60)
    store = TimeEntryStore(test_db)

    updated = await store.update(entry_id, TimeEntryUpdate(end_time=T0 + timedelta(hours=2)))
    assert updated.duration == 120

    with pytest.raises(ValidationError):
        await store.update(entry_id, TimeEntryUpdate(end_time=T0 - timedelta(hours=1)))


async def test_running_entry_duration_not_editable(test_db, catalog, make_entry):
    entry_id = await make_entry(client_id=catalog.acme, active=True)
    store = TimeEntryStore(test_db)
    with pytest.raises(StateError):
        await store.update(entry_id, TimeEntryUpdate(duration=30))

    renamed = await store.update(entry_id, TimeEntryUpdate(description="Standup"))
    assert renamed.description == "Standup"
    assert renamed.is_active


async def test_filters(test_db, clock, catalog, make_entry):
    march_3 = await make_entry(client_id=catalog.acme, start=T0)
    march_5 = await make_entry(client_id=catalog.acme, start=T0 + timedelta(days=2))
    globex = await make_entry(client_id=catalog.globex, start=T0)
    store = TimeEntryStore(test_db)

    by_client = await store.list_entries(TimeEntryFilter(client_id=catalog.acme))
    assert [e.id for e in by_client] == [march_5, march_3]

    by_range = await store.list_entries(
        TimeEntryFilter(start_date=date(2025, 3, 3), end_date=date(2025, 3, 3)),
    )
    assert sorted(e.id for e in by_range) == sorted([march_3, globex])

    await InvoiceEngine(test_db, clock).generate_from_selected([march_3])
    await test_db.commit()
    uninvoiced = await store.list_entries(TimeEntryFilter(is_invoiced=False))
    assert sorted(e.id for e in uninvoiced) == sorted([march_5, globex])


async def test_summarize_matches_invoice_pricing(test_db, catalog, make_entry):
    await make_entry(client_id=catalog.acme, project_id=catalog.ecommerce, minutes=240)
    await make_entry(client_id=catalog.acme, project_id=catalog.ecommerce, minutes=240)
    running = await make_entry(client_id=catalog.acme, active=True)

    summary = await TimeEntryStore(test_db).summarize(TimeEntryFilter(client_id=catalog.acme))

    assert summary["entryCount"] == 3
    assert summary["totalMinutes"] == 480
    assert summary["totalHours"] == "8.00"
    assert summary["totalAmount"] == "1400.00"
    assert summary["hourlyRate"] == "Varies"
    assert [line["entryId"] for line in summary["lines"]][-1] == running


async def test_delete_rules(test_db, clock, catalog, make_entry):
    done = await make_entry(client_id=catalog.acme)
    running = await make_entry(client_id=catalog.acme, active=True)
    invoiced = await make_entry(client_id=catalog.globex)
    await InvoiceEngine(test_db, clock).generate_from_selected([invoiced])
    await test_db.commit()
    store = TimeEntryStore(test_db)

    with pytest.raises(StateError, match="running"):
        await store.delete(running)
    with pytest.raises(StateError, match="invoiced"):
        await store.delete(invoiced)
    assert await store.delete(done) == {"id": done, "deleted": True}
    await test_db.commit()
    with pytest.raises(NotFoundError):
        await store.get(done)


def test_period_bounds_are_inclusive_days():
    lower, upper = period_bounds(date(2025, 3, 1), date(2025, 3, 31))
    assert lower == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert upper == datetime(2025, 4, 1, tzinfo=timezone.utc)
    with pytest.raises(ValidationError):
        period_bounds(date(2025, 3, 2), date(2025, 3, 1))
