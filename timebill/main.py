"""Timebill API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Unexpected exceptions become the generic failure envelope (api/error_handlers.py)
    - CORS configured from settings (not hardcoded)
    - The command transport is chosen once, in lifespan, from settings.bridge_mode
    - Direct mode owns the database and serves WS /ws/ipc for detached UIs;
      forwarding mode owns no database and relays to a remote host

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Transport and host stored on app.state: routes read them, tests replace them
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timebill import __version__
from timebill.api.error_handlers import register_error_handlers
from timebill.api.routes import health, host_socket, ipc_forward
from timebill.bridge.forwarding import ForwardingTransport
from timebill.bridge.transport import CommandTransport, DirectTransport
from timebill.config import Settings, get_settings
from timebill.core.clock import SystemClock
from timebill.core.domain_types import BridgeMode
from timebill.infrastructure.database import init_db
from timebill.infrastructure.observability import setup_logging
from timebill.services.command_host import CommandHost

logger = logging.getLogger(__name__)


async def build_transport(app: FastAPI, settings: Settings) -> CommandTransport:
    """Wire the configured transport (and, in direct mode, the host and database)."""
    app.state.bridge_mode = settings.bridge_mode
    app.state.command_host = None
    if settings.bridge_mode is BridgeMode.FORWARDING:
        return ForwardingTransport(
            settings.host_ws_url,
            request_timeout=settings.bridge_request_timeout_seconds,
            max_immediate_attempts=settings.bridge_max_immediate_attempts,
            backoff_seconds=settings.bridge_backoff_seconds,
        )

    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await manager.create_schema()
    app.state.db_manager = manager
    host = CommandHost(manager.session, SystemClock(), settings)
    app.state.command_host = host
    return DirectTransport(host)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    transport = await build_transport(app, settings)
    app.state.transport = transport
    await transport.start()
    logger.info(f"Timebill API started in {settings.bridge_mode.value} mode")
    yield
    logger.info("Timebill API shutting down")
    await transport.close()
    manager = getattr(app.state, "db_manager", None)
    if manager is not None:
        await manager.close()


app = FastAPI(
    title="Timebill API", version=__version__, lifespan=lifespan,
)

# CORS - configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes - explicit registration
app.include_router(health.router)
app.include_router(ipc_forward.router)
app.include_router(host_socket.router)
