"""Project ORM - client work stream with an optional hourly-rate override.

Invariants:
    - client_id is required
    - hourly_rate overrides the client rate when set (not NULL)
    - at most one project per client has is_default = true (maintained by the catalog store)
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timebill.db.base import Base
from timebill.models._columns import created_at_column, updated_at_column


class Project(Base):
    """Project owned by a client; owns tasks."""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    hourly_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    client: Mapped["Client"] = relationship(
        "Client", back_populates="projects", lazy="selectin",
    )
    tasks: Mapped[list["Task"]] = relationship(
        "Task", back_populates="project",
        cascade="all, delete-orphan", lazy="selectin",
        passive_deletes=True,
    )
