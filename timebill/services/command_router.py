"""Command Router - explicit routing from "<resource>:<verb>" channel to handler.

Invariants:
    - Every channel->handler mapping is visible in one dict - no getattr magic, no auto-discovery
    - Unknown channels raise UnknownCommandError ("No handler registered for channel: X")
    - Positional args are bound against the handler signature; a mismatch is a ValidationError
    - Payload objects are validated with Pydantic; failures become ValidationError
    - Handlers return JSON-native data (dicts, lists, strings, numbers, None)
    - Handlers do NOT commit: the command host owns the transaction boundary

Design Decisions:
    - Explicit dict over getattr: adding a command requires editing CHANNELS and the dict
    - Router instantiated per command with the command's session, clock and settings
    - Thin handlers: argument coercion + serialization; rules live in engines and stores
"""

import inspect
import logging
from datetime import date
from typing import Any, Awaitable, Callable

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.config import Settings
from timebill.core.clock import Clock
from timebill.core.errors import UnknownCommandError, ValidationError
from timebill.schemas.commands import (
    ClientCreate, ClientUpdate, CommandPayload, InvoiceFilter, ProjectCreate,
    ProjectUpdate, TaskCreate, TaskUpdate, TimeEntryCreate, TimeEntryFilter,
    TimeEntryUpdate, TimerStart,
)
from timebill.services.catalog_store import CatalogStore
from timebill.services.invoice_engine import InvoiceEngine
from timebill.services.serializers import (
    client_to_dict, invoice_to_dict, project_to_dict, task_to_dict, time_entry_to_dict,
)
from timebill.services.settings_store import SettingsStore
from timebill.services.time_entry_store import TimeEntryStore
from timebill.services.timer_engine import TimerEngine

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]

_DATE = TypeAdapter(date)

CHANNELS = frozenset({
    "clients:list", "clients:create", "clients:update", "clients:delete",
    "projects:list", "projects:create", "projects:update", "projects:delete",
    "projects:getDefault",
    "tasks:list", "tasks:create", "tasks:update", "tasks:delete",
    "timeEntries:list", "timeEntries:get", "timeEntries:create", "timeEntries:update",
    "timeEntries:delete", "timeEntries:summarize", "timeEntries:start",
    "timeEntries:stop", "timeEntries:resume", "timeEntries:getActive",
    "invoices:list", "invoices:get", "invoices:getSnapshot", "invoices:generate",
    "invoices:generateFromSelected", "invoices:regenerate", "invoices:delete",
    "invoices:updateStatus", "invoices:filename",
    "settings:get", "settings:set", "settings:getAll", "settings:update",
    "settings:getLastUsed",
})

# Channels that never write; the host runs them without the write lock
READ_ONLY_CHANNELS = frozenset({
    "clients:list", "projects:list", "projects:getDefault", "tasks:list",
    "timeEntries:list", "timeEntries:get", "timeEntries:summarize",
    "timeEntries:getActive", "invoices:list", "invoices:get", "invoices:getSnapshot",
    "invoices:filename", "settings:get", "settings:getAll", "settings:getLastUsed",
})

# Channels whose success changes the running timer
TIMER_CHANNELS = frozenset({"timeEntries:start", "timeEntries:stop", "timeEntries:resume"})


class CommandRouter:
    """Routes channel -> handler. Explicit registration, no auto-discovery."""

    def __init__(self, db: AsyncSession, clock: Clock, settings: Settings):
        self._catalog = CatalogStore(db)
        self._entries = TimeEntryStore(db)
        self._timer = TimerEngine(
            db, clock, settings.default_rounding_unit, settings.resume_policy,
        )
        self._invoices = InvoiceEngine(db, clock)
        self._settings = SettingsStore(db)

        # every mapping explicit - adding a command requires editing this dict
        self._handlers: dict[str, Handler] = {
            # Clients
            "clients:list": self.clients_list,
            "clients:create": self.clients_create,
            "clients:update": self.clients_update,
            "clients:delete": self._catalog.delete_client,

            # Projects
            "projects:list": self.projects_list,
            "projects:create": self.projects_create,
            "projects:update": self.projects_update,
            "projects:delete": self._catalog.delete_project,
            "projects:getDefault": self.projects_get_default,

            # Tasks
            "tasks:list": self.tasks_list,
            "tasks:create": self.tasks_create,
            "tasks:update": self.tasks_update,
            "tasks:delete": self._catalog.delete_task,

            # Time entries & timer
            "timeEntries:list": self.entries_list,
            "timeEntries:get": self.entries_get,
            "timeEntries:create": self.entries_create,
            "timeEntries:update": self.entries_update,
            "timeEntries:delete": self._entries.delete,
            "timeEntries:summarize": self.entries_summarize,
            "timeEntries:start": self.timer_start,
            "timeEntries:stop": self.timer_stop,
            "timeEntries:resume": self.timer_resume,
            "timeEntries:getActive": self.timer_get_active,

            # Invoices
            "invoices:list": self.invoices_list,
            "invoices:get": self.invoices_get,
            "invoices:getSnapshot": self._invoices.get_snapshot,
            "invoices:generate": self.invoices_generate,
            "invoices:generateFromSelected": self.invoices_generate_from_selected,
            "invoices:regenerate": self.invoices_regenerate,
            "invoices:delete": self._invoices.delete,
            "invoices:updateStatus": self.invoices_update_status,
            "invoices:filename": self._invoices.filename,

            # Settings
            "settings:get": self._settings.get,
            "settings:set": self._settings.set,
            "settings:getAll": self._settings.get_all,
            "settings:update": self._settings.update,
            "settings:getLastUsed": self._settings.get_last_used,
        }

    @property
    def channels(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def execute(self, channel: str, args: list) -> Any:
        """Route channel to handler with positional args. Returns JSON-native data."""
        handler = self._handlers.get(channel)
        if handler is None:
            raise UnknownCommandError(channel)
        try:
            bound = inspect.signature(handler).bind(*args)
        except TypeError as e:
            raise ValidationError(f"Invalid arguments for {channel}: {e}")
        logger.debug(f"Dispatching {channel}", extra={"channel": channel})
        return await handler(*bound.args, **bound.kwargs)

    # ─── Clients / projects / tasks ────────────────────────────────

    async def clients_list(self) -> list[dict]:
        return [client_to_dict(c) for c in await self._catalog.list_clients()]

    async def clients_create(self, payload: dict) -> dict:
        client = await self._catalog.create_client(parse_payload(ClientCreate, payload))
        return client_to_dict(client)

    async def clients_update(self, client_id: int, payload: dict) -> dict:
        client = await self._catalog.update_client(
            client_id, parse_payload(ClientUpdate, payload),
        )
        return client_to_dict(client)

    async def projects_list(self, client_id: int | None = None) -> list[dict]:
        return [project_to_dict(p) for p in await self._catalog.list_projects(client_id)]

    async def projects_create(self, payload: dict) -> dict:
        project = await self._catalog.create_project(parse_payload(ProjectCreate, payload))
        return project_to_dict(project)

    async def projects_update(self, project_id: int, payload: dict) -> dict:
        project = await self._catalog.update_project(
            project_id, parse_payload(ProjectUpdate, payload),
        )
        return project_to_dict(project)

    async def projects_get_default(self, client_id: int) -> dict | None:
        project = await self._catalog.get_default_project(client_id)
        return project_to_dict(project) if project else None

    async def tasks_list(self, project_id: int | None = None) -> list[dict]:
        return [task_to_dict(t) for t in await self._catalog.list_tasks(project_id)]

    async def tasks_create(self, payload: dict) -> dict:
        return task_to_dict(await self._catalog.create_task(parse_payload(TaskCreate, payload)))

    async def tasks_update(self, task_id: int, payload: dict) -> dict:
        task = await self._catalog.update_task(task_id, parse_payload(TaskUpdate, payload))
        return task_to_dict(task)

    # ─── Time entries & timer ──────────────────────────────────────

    async def entries_list(self, filters: dict | None = None) -> list[dict]:
        entries = await self._entries.list_entries(parse_payload(TimeEntryFilter, filters))
        return [time_entry_to_dict(e) for e in entries]

    async def entries_get(self, entry_id: int) -> dict:
        return time_entry_to_dict(await self._entries.get(entry_id))

    async def entries_create(self, payload: dict) -> dict:
        entry = await self._entries.create(parse_payload(TimeEntryCreate, payload))
        return time_entry_to_dict(entry)

    async def entries_update(self, entry_id: int, payload: dict) -> dict:
        entry = await self._entries.update(entry_id, parse_payload(TimeEntryUpdate, payload))
        return time_entry_to_dict(entry)

    async def entries_summarize(self, filters: dict | None = None) -> dict:
        return await self._entries.summarize(parse_payload(TimeEntryFilter, filters))

    async def timer_start(self, payload: dict | None = None) -> dict:
        entry = await self._timer.start(parse_payload(TimerStart, payload))
        return time_entry_to_dict(entry)

    async def timer_stop(self, entry_id: int, rounding_unit: int | None = None) -> dict:
        return time_entry_to_dict(await self._timer.stop(entry_id, rounding_unit))

    async def timer_resume(self, entry_id: int) -> dict:
        return time_entry_to_dict(await self._timer.resume(entry_id))

    async def timer_get_active(self) -> dict | None:
        entry = await self._timer.get_active()
        return time_entry_to_dict(entry) if entry else None

    # ─── Invoices ──────────────────────────────────────────────────

    async def invoices_list(self, filters: dict | None = None) -> list[dict]:
        invoices = await self._invoices.list_invoices(parse_payload(InvoiceFilter, filters))
        return [invoice_to_dict(i) for i in invoices]

    async def invoices_get(self, invoice_id: int) -> dict:
        return invoice_to_dict(await self._invoices.get(invoice_id))

    async def invoices_generate(
        self, client_id: int, period_start: str, period_end: str,
    ) -> dict:
        invoice = await self._invoices.generate(
            client_id,
            parse_date(period_start, "periodStart"),
            parse_date(period_end, "periodEnd"),
        )
        return invoice_to_dict(invoice)

    async def invoices_generate_from_selected(self, entry_ids: list[int]) -> dict:
        return invoice_to_dict(await self._invoices.generate_from_selected(entry_ids))

    async def invoices_regenerate(self, invoice_id: int) -> dict:
        return invoice_to_dict(await self._invoices.regenerate(invoice_id))

    async def invoices_update_status(self, invoice_id: int, status: str) -> dict:
        return invoice_to_dict(await self._invoices.update_status(invoice_id, status))


def parse_payload(model: type[CommandPayload], value: Any) -> CommandPayload:
    """Validate a command payload object; None means "no fields"."""
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise ValidationError(f"{model.__name__} expects an object, got {type(value).__name__}")
    try:
        return model.model_validate(value)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or model.__name__
        raise ValidationError(f"Invalid {location}: {first['msg']}", field=location)


def parse_date(value: Any, field: str) -> date:
    try:
        return _DATE.validate_python(value)
    except PydanticValidationError:
        raise ValidationError(f"Invalid {field}: expected a YYYY-MM-DD date, got {value!r}", field=field)
