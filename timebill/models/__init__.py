"""ORM Models - SQLAlchemy declarative models for all Timebill entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Client owns projects (cascade); entries only reference clients/projects/tasks

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from timebill.models.client import Client  # noqa: F401
from timebill.models.project import Project  # noqa: F401
from timebill.models.task import Task  # noqa: F401
from timebill.models.time_entry import TimeEntry  # noqa: F401
from timebill.models.invoice import Invoice  # noqa: F401
from timebill.models.setting import Setting  # noqa: F401
