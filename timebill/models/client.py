"""Client ORM - billable customer with an optional default hourly rate.

Invariants:
    - name is non-empty
    - hourly_rate NULL means "no client rate" (distinct from 0)
    - deleting a client cascades to its projects; time entries keep the row with client_id NULL

Design Decisions:
    - Numeric(10, 2) for money: exact decimals, no float drift
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timebill.db.base import Base
from timebill.models._columns import created_at_column, updated_at_column


class Client(Base):
    """Client - top of the client/project/task hierarchy."""
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    projects: Mapped[list["Project"]] = relationship(
        "Project", back_populates="client",
        cascade="all, delete-orphan", lazy="selectin",
        passive_deletes=True,
    )
