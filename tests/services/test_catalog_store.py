"""Catalog Store - clients, projects and tasks.

Tests cover:
    - Create/update/list with partial updates
    - One default project per client
    - Deleting a client with invoices is refused; without invoices it cascades to
      projects and tasks while time entries keep their rows
"""

from datetime import date
from decimal import Decimal

import pytest

from timebill.core.errors import NotFoundError, StateError
from timebill.models import TimeEntry
from timebill.schemas.commands import (
    ClientCreate, ClientUpdate, ProjectCreate, ProjectUpdate, TaskCreate, TaskUpdate,
)
from timebill.services.catalog_store import CatalogStore
from timebill.services.invoice_engine import InvoiceEngine


async def test_create_and_list_clients(test_db):
    store = CatalogStore(test_db)
    await store.create_client(ClientCreate(name="Zeta"))
    created = await store.create_client(ClientCreate(name="Acme", hourly_rate=Decimal("150")))
    await test_db.commit()

    assert created.hourly_rate == Decimal("150.00")
    assert [c.name for c in await store.list_clients()] == ["Acme", "Zeta"]


async def test_partial_update_keeps_other_fields(test_db, catalog):
    store = CatalogStore(test_db)
    updated = await store.update_client(catalog.acme, ClientUpdate(email="ap@acme.test"))
    assert updated.name == "Acme"
    assert updated.hourly_rate == Decimal("150.00")
    assert updated.email == "ap@acme.test"

    cleared = await store.update_client(catalog.acme, ClientUpdate(hourly_rate=None))
    assert cleared.hourly_rate is None


async def test_update_unknown_client(test_db):
    with pytest.raises(NotFoundError):
        await CatalogStore(test_db).update_client(5, ClientUpdate(name="Nobody"))


async def test_single_default_project_per_client(test_db, catalog):
    store = CatalogStore(test_db)
    await store.update_project(catalog.website, ProjectUpdate(is_default=True))
    created = await store.create_project(
        ProjectCreate(name="Mobile", client_id=catalog.acme, is_default=True),
    )
    await test_db.commit()

    default = await store.get_default_project(catalog.acme)
    assert default.id == created.id
    defaults = [p for p in await store.list_projects(catalog.acme) if p.is_default]
    assert [p.id for p in defaults] == [created.id]
    assert await store.get_default_project(catalog.globex) is None


async def test_project_for_unknown_client(test_db):
    with pytest.raises(NotFoundError):
        await CatalogStore(test_db).create_project(ProjectCreate(name="X", client_id=42))


async def test_tasks_listed_per_project(test_db, catalog):
    store = CatalogStore(test_db)
    await store.create_task(TaskCreate(name="Payments", project_id=catalog.ecommerce))
    renamed = await store.update_task(catalog.checkout, TaskUpdate(name="Checkout v2"))
    await test_db.commit()

    assert renamed.name == "Checkout v2"
    assert [t.name for t in await store.list_tasks(catalog.ecommerce)] == ["Checkout v2", "Payments"]


async def test_delete_client_with_invoices_refused(test_db, clock, catalog, make_entry):
    await make_entry(client_id=catalog.acme)
    await InvoiceEngine(test_db, clock).generate(catalog.acme, date(2025, 3, 1), date(2025, 3, 31))
    await test_db.commit()

    with pytest.raises(StateError):
        await CatalogStore(test_db).delete_client(catalog.acme)


async def test_delete_client_cascades_catalog_and_keeps_entries(test_db, catalog, make_entry):
    entry_id = await make_entry(
        client_id=catalog.acme, project_id=catalog.ecommerce, task_id=catalog.checkout,
    )
    store = CatalogStore(test_db)

    assert await store.delete_client(catalog.acme) == {"id": catalog.acme, "deleted": True}
    await test_db.commit()

    assert [p.name for p in await store.list_projects()] == ["Research"]
    assert await store.list_tasks() == []
    entry = await test_db.get(TimeEntry, entry_id, populate_existing=True)
    assert (entry.client_id, entry.project_id, entry.task_id) == (None, None, None)


async def test_delete_task_detaches_entries(test_db, catalog, make_entry):
    entry_id = await make_entry(client_id=catalog.acme, project_id=catalog.website, task_id=catalog.landing)
    assert await CatalogStore(test_db).delete_task(catalog.landing) == {"id": catalog.landing, "deleted": True}
    await test_db.commit()

    entry = await test_db.get(TimeEntry, entry_id, populate_existing=True)
    assert entry.task_id is None
    assert entry.project_id == catalog.website
