"""Catalog Store - clients, projects and tasks.

Invariants:
    - A client with invoices cannot be deleted (StateError)
    - At most one default project per client: marking one clears the others
    - Deleting a client removes its projects and tasks; time entries keep their rows
    - Does NOT commit: the command host owns the transaction boundary
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.errors import StateError
from timebill.models import Client, Invoice, Project, Task
from timebill.schemas.commands import (
    ClientCreate, ClientUpdate, ProjectCreate, ProjectUpdate, TaskCreate, TaskUpdate,
)
from timebill.services.entry_relations import get_or_404

logger = logging.getLogger(__name__)


class CatalogStore:
    """Client/project/task CRUD inside the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Clients ───────────────────────────────────────────────────

    async def list_clients(self) -> list[Client]:
        result = await self.db.execute(select(Client).order_by(Client.name, Client.id))
        return list(result.scalars())

    async def create_client(self, payload: ClientCreate) -> Client:
        client = Client(**payload.model_dump())
        self.db.add(client)
        await self.db.flush()
        return await get_or_404(self.db, Client, client.id)

    async def update_client(self, client_id: int, payload: ClientUpdate) -> Client:
        client = await get_or_404(self.db, Client, client_id)
        _apply(client, payload.changes(), required=("name",))
        await self.db.flush()
        return await get_or_404(self.db, Client, client_id)

    async def delete_client(self, client_id: int) -> dict:
        client = await get_or_404(self.db, Client, client_id)
        invoices = await self.db.scalar(
            select(func.count(Invoice.id)).where(Invoice.client_id == client_id)
        )
        if invoices:
            raise StateError(
                f"Client {client_id} has {invoices} invoice(s) and cannot be deleted",
            )
        await self.db.delete(client)
        await self.db.flush()
        logger.info(f"Deleted client {client_id}")
        return {"id": client_id, "deleted": True}

    # ─── Projects ──────────────────────────────────────────────────

    async def list_projects(self, client_id: int | None = None) -> list[Project]:
        query = select(Project).order_by(Project.name, Project.id)
        if client_id is not None:
            query = query.where(Project.client_id == client_id)
        result = await self.db.execute(query)
        return list(result.scalars())

    async def create_project(self, payload: ProjectCreate) -> Project:
        await get_or_404(self.db, Client, payload.client_id)
        project = Project(**payload.model_dump())
        self.db.add(project)
        await self.db.flush()
        if project.is_default:
            await self._clear_other_defaults(project)
        return await get_or_404(self.db, Project, project.id)

    async def update_project(self, project_id: int, payload: ProjectUpdate) -> Project:
        project = await get_or_404(self.db, Project, project_id)
        changes = payload.changes()
        if changes.get("client_id") is not None:
            await get_or_404(self.db, Client, changes["client_id"])
        _apply(project, changes, required=("name", "client_id", "is_default"))
        await self.db.flush()
        if project.is_default:
            await self._clear_other_defaults(project)
        return await get_or_404(self.db, Project, project_id)

    async def delete_project(self, project_id: int) -> dict:
        project = await get_or_404(self.db, Project, project_id)
        await self.db.delete(project)
        await self.db.flush()
        return {"id": project_id, "deleted": True}

    async def get_default_project(self, client_id: int) -> Project | None:
        await get_or_404(self.db, Client, client_id)
        result = await self.db.execute(
            select(Project)
            .where(Project.client_id == client_id, Project.is_default.is_(True))
            .order_by(Project.id)
        )
        return result.scalars().first()

    async def _clear_other_defaults(self, project: Project) -> None:
        await self.db.execute(
            update(Project)
            .where(
                Project.client_id == project.client_id,
                Project.id != project.id,
                Project.is_default.is_(True),
            )
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    # ─── Tasks ─────────────────────────────────────────────────────

    async def list_tasks(self, project_id: int | None = None) -> list[Task]:
        query = select(Task).order_by(Task.name, Task.id)
        if project_id is not None:
            query = query.where(Task.project_id == project_id)
        result = await self.db.execute(query)
        return list(result.scalars())

    async def create_task(self, payload: TaskCreate) -> Task:
        await get_or_404(self.db, Project, payload.project_id)
        task = Task(**payload.model_dump())
        self.db.add(task)
        await self.db.flush()
        return await get_or_404(self.db, Task, task.id)

    async def update_task(self, task_id: int, payload: TaskUpdate) -> Task:
        task = await get_or_404(self.db, Task, task_id)
        changes = payload.changes()
        if changes.get("project_id") is not None:
            await get_or_404(self.db, Project, changes["project_id"])
        _apply(task, changes, required=("name", "project_id"))
        await self.db.flush()
        return await get_or_404(self.db, Task, task_id)

    async def delete_task(self, task_id: int) -> dict:
        task = await get_or_404(self.db, Task, task_id)
        await self.db.delete(task)
        await self.db.flush()
        return {"id": task_id, "deleted": True}


def _apply(row, changes: dict, required: tuple[str, ...] = ()) -> None:
    """Copy sent fields onto a row; NULL is ignored for non-nullable columns."""
    for key, value in changes.items():
        if key in required and value is None:
            continue
        setattr(row, key, value)
