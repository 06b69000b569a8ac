"""Root conftest - shared test configuration and database fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database with foreign keys enforced
    - Time comes from a DeterministicClock starting 2025-03-03 09:00 UTC
    - The command host under test uses the same engine as test_db

Design Decisions:
    - StaticPool: one in-memory database shared by test_db and the host's sessions
    - Settings built with _env_file=None: a developer .env never leaks into tests
"""

import os

# Tests never touch a real database file or a remote host
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BRIDGE_MODE", "direct")
os.environ.setdefault("LOG_FORMAT", "text")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import timebill.models  # noqa: F401
from timebill.config import Settings
from timebill.core.clock import DeterministicClock
from timebill.db.base import Base
from timebill.infrastructure.database import DatabaseSessionManager, enable_sqlite_foreign_keys
from timebill.models import Client, Project, Task, TimeEntry
from timebill.services.command_host import CommandHost

T0 = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def db_manager(test_engine):
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def clock():
    return DeterministicClock(T0)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def command_host(db_manager, clock, settings):
    return CommandHost(db_manager.session, clock, settings)


@pytest.fixture
async def catalog(test_db):
    """Acme (150/h) with E-commerce (175/h) and Website (no rate); Globex (no rates)."""
    acme = Client(name="Acme", email="billing@acme.test", hourly_rate=Decimal("150.00"))
    globex = Client(name="Globex")
    test_db.add_all([acme, globex])
    await test_db.flush()

    ecommerce = Project(name="E-commerce", client_id=acme.id, hourly_rate=Decimal("175.00"))
    website = Project(name="Website", client_id=acme.id)
    research = Project(name="Research", client_id=globex.id)
    test_db.add_all([ecommerce, website, research])
    await test_db.flush()

    checkout = Task(name="Checkout flow", project_id=ecommerce.id)
    landing = Task(name="Landing page", project_id=website.id)
    test_db.add_all([checkout, landing])
    await test_db.commit()

    return SimpleNamespace(
        acme=acme.id, globex=globex.id,
        ecommerce=ecommerce.id, website=website.id, research=research.id,
        checkout=checkout.id, landing=landing.id,
    )


@pytest.fixture
def make_entry(test_db):
    """Insert a committed time entry; returns its id."""

    async def _make(
        *, client_id=None, project_id=None, task_id=None, start=T0, minutes=60,
        description=None, active=False,
    ) -> int:
        entry = TimeEntry(
            client_id=client_id,
            project_id=project_id,
            task_id=task_id,
            description=description,
            start_time=start,
            end_time=None if active else start + timedelta(minutes=minutes),
            duration=None if active else minutes,
            is_active=active,
        )
        test_db.add(entry)
        await test_db.commit()
        return entry.id

    return _make
