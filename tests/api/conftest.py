"""API test fixtures - FastAPI app wired to an in-memory command host.

Invariants:
    - Lifespan is not run: app.state gets a started DirectTransport over the test host
    - db_manager patched for the readiness probe, restored afterwards
"""

import pytest
from httpx import ASGITransport, AsyncClient

import timebill.infrastructure.database as db_module
from timebill.bridge.transport import DirectTransport
from timebill.core.domain_types import BridgeMode
from timebill.main import app

STATE_KEYS = ("transport", "command_host", "bridge_mode")


@pytest.fixture
def app_state():
    """Snapshot app.state around a test."""
    saved = {key: getattr(app.state, key, None) for key in STATE_KEYS}
    yield app.state
    for key, value in saved.items():
        setattr(app.state, key, value)


@pytest.fixture
async def client(app_state, command_host, db_manager):
    transport = DirectTransport(command_host)
    await transport.start()
    app_state.transport = transport
    app_state.command_host = command_host
    app_state.bridge_mode = BridgeMode.DIRECT

    original_manager = db_module.db_manager
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    await transport.close()
    db_module.db_manager = original_manager
