"""TimeEntry ORM - one span of tracked work, either running or stopped.

Invariants:
    - At most one row has is_active = true (partial unique index uq_time_entries_single_active)
    - Running: end_time and duration are NULL; stopped: both set
    - is_invoiced = true iff invoice_id is set (check constraint)
    - duration is integer minutes after rounding; carried_minutes holds time kept across resume

Design Decisions:
    - Single-active-timer enforced by the store, not only by a pre-check: a lost race
      surfaces as IntegrityError inside the creating transaction
    - ON DELETE SET NULL for client/project/task: history survives catalog deletes
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime, ForeignKey, Index, CheckConstraint, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timebill.db.base import Base
from timebill.models._columns import created_at_column, updated_at_column

SINGLE_ACTIVE_INDEX = "uq_time_entries_single_active"


class TimeEntry(Base):
    """Tracked time, priced at invoice time through the rate resolver."""
    __tablename__ = "time_entries"
    __table_args__ = (
        Index(
            SINGLE_ACTIVE_INDEX, "is_active", unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        CheckConstraint(
            "(is_invoiced AND invoice_id IS NOT NULL) "
            "OR (NOT is_invoiced AND invoice_id IS NULL)",
            name="ck_time_entries_invoice_link",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[int | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
    )
    task_id: Mapped[int | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    carried_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    is_invoiced: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships (read-only navigation for pricing and serialization)
    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")
    project: Mapped[Optional["Project"]] = relationship("Project", lazy="selectin")
    task: Mapped[Optional["Task"]] = relationship("Task", lazy="selectin")
