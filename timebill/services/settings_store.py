"""Settings Store - key/value application settings.

Invariants:
    - Values are stored as strings (or NULL); callers parse what they need
    - Reads fall back to DEFAULTS for known keys that were never written
    - Does NOT commit: the command host owns the transaction boundary

Design Decisions:
    - Last-used client/project/task kept as settings, written by timer start
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.errors import ValidationError
from timebill.models import Setting

logger = logging.getLogger(__name__)

TIMER_ROUNDING = "timer_rounding"
INVOICE_TERMS = "invoice_terms"
COMPANY_KEYS = ("company_name", "company_email", "company_phone", "company_website")
LAST_USED_KEYS = {
    "clientId": "lastUsedClientId",
    "projectId": "lastUsedProjectId",
    "taskId": "lastUsedTaskId",
}

DEFAULTS: dict[str, str] = {
    INVOICE_TERMS: "Net 30",
}

MAX_KEY_LENGTH = 100


class SettingsStore:
    """Reads and writes Setting rows inside the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, key: str) -> str | None:
        row = await self._row(key)
        if row is None:
            return DEFAULTS.get(key)
        return row.value

    async def set(self, key: str, value: object) -> str | None:
        if not isinstance(key, str) or not key.strip() or len(key) > MAX_KEY_LENGTH:
            raise ValidationError("Setting key must be a non-empty string", field="key")
        stored = None if value is None else str(value)
        row = await self._row(key)
        if row is None:
            self.db.add(Setting(key=key, value=stored))
        else:
            row.value = stored
        await self.db.flush()
        return stored

    async def get_all(self) -> dict[str, str | None]:
        result = await self.db.execute(select(Setting).order_by(Setting.key))
        values = dict(DEFAULTS)
        values.update({row.key: row.value for row in result.scalars()})
        return values

    async def update(self, values: dict) -> dict[str, str | None]:
        if not isinstance(values, dict):
            raise ValidationError("Settings update expects an object of key/value pairs")
        for key, value in values.items():
            await self.set(key, value)
        return await self.get_all()

    async def get_many(self, keys: tuple[str, ...]) -> dict[str, str | None]:
        return {key: await self.get(key) for key in keys}

    async def get_last_used(self) -> dict[str, int | None]:
        last_used = {}
        for name, key in LAST_USED_KEYS.items():
            value = await self.get(key)
            last_used[name] = int(value) if value and value.isdigit() else None
        return last_used

    async def record_last_used(
        self, client_id: int | None, project_id: int | None, task_id: int | None,
    ) -> None:
        for name, value in (
            ("clientId", client_id), ("projectId", project_id), ("taskId", task_id),
        ):
            if value is not None:
                await self.set(LAST_USED_KEYS[name], value)

    async def _row(self, key: str) -> Setting | None:
        result = await self.db.execute(select(Setting).where(Setting.key == key))
        return result.scalar_one_or_none()
