"""Database Session Manager - error mapping, rollback and health checks.

Tests cover:
    - SQLAlchemy integrity errors surface as PersistenceError
    - Domain errors propagate unchanged and roll the session back
    - health_check() reports connectivity
    - Foreign keys are enforced on SQLite connections
"""

import pytest
from sqlalchemy import select

from timebill.core.errors import NotFoundError, PersistenceError
from timebill.models import Client, Project, Setting


async def test_integrity_error_mapped(db_manager):
    with pytest.raises(PersistenceError) as exc:
        async with db_manager.session() as db:
            db.add_all([Setting(key="invoice_terms"), Setting(key="invoice_terms")])
            await db.commit()
    assert exc.value.message == "Database commit failed: Integrity constraint violated"


async def test_domain_errors_propagate_and_roll_back(db_manager):
    with pytest.raises(NotFoundError):
        async with db_manager.session() as db:
            db.add(Client(name="Acme"))
            await db.flush()
            raise NotFoundError("Client", 1)

    async with db_manager.session() as db:
        assert (await db.execute(select(Client))).scalars().all() == []


async def test_foreign_keys_enforced(db_manager):
    with pytest.raises(PersistenceError):
        async with db_manager.session() as db:
            db.add(Project(name="Orphan", client_id=12345))
            await db.commit()


async def test_health_check(db_manager):
    assert await db_manager.health_check() is True
