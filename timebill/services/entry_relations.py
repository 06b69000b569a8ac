"""Entry Relations - lookup helpers and client/project/task consistency for time entries.

Invariants:
    - Unknown ids raise NotFoundError
    - A task must belong to the given project, a project to the given client (ValidationError)
    - Missing client/project ids are inferred upward from the task / project
"""

from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.errors import NotFoundError, ValidationError
from timebill.db.base import Base
from timebill.models import Client, Project, Task

ModelT = TypeVar("ModelT", bound=Base)


async def get_or_404(
    db: AsyncSession, model: type[ModelT], entity_id: object, label: str | None = None,
) -> ModelT:
    """Load a row by primary key with fresh attributes, or raise NotFoundError."""
    if not isinstance(entity_id, int) or isinstance(entity_id, bool):
        raise ValidationError(
            f"{label or model.__name__} id must be an integer, got {entity_id!r}",
        )
    result = await db.execute(
        select(model).where(model.id == entity_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError(label or model.__name__, entity_id)
    return row


@dataclass
class EntryRelations:
    client: Client | None = None
    project: Project | None = None
    task: Task | None = None

    @property
    def client_id(self) -> int | None:
        return self.client.id if self.client else None

    @property
    def project_id(self) -> int | None:
        return self.project.id if self.project else None

    @property
    def task_id(self) -> int | None:
        return self.task.id if self.task else None


async def resolve_relations(
    db: AsyncSession,
    client_id: int | None = None,
    project_id: int | None = None,
    task_id: int | None = None,
) -> EntryRelations:
    relations = EntryRelations()
    if task_id is not None:
        relations.task = await get_or_404(db, Task, task_id)
        if project_id is None:
            project_id = relations.task.project_id
        elif project_id != relations.task.project_id:
            raise ValidationError(
                f"Task {task_id} does not belong to project {project_id}", field="taskId",
            )
    if project_id is not None:
        relations.project = await get_or_404(db, Project, project_id)
        if client_id is None:
            client_id = relations.project.client_id
        elif client_id != relations.project.client_id:
            raise ValidationError(
                f"Project {project_id} does not belong to client {client_id}",
                field="projectId",
            )
    if client_id is not None:
        relations.client = await get_or_404(db, Client, client_id)
    return relations
