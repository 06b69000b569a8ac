"""Invoice ORM - generated bill with a frozen line-item snapshot.

Invariants:
    - invoice_number unique and never changed after creation
    - status in {generated, sent, paid, draft}
    - data is UTF-8 JSON text, stored as given and validated on read
    - period_start <= period_end
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import String, Text, Date, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timebill.db.base import Base
from timebill.models._columns import created_at_column, updated_at_column


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint(
            "status IN ('generated', 'sent', 'paid', 'draft')",
            name="ck_invoices_status",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(
        String(40), nullable=False, unique=True,
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id"), nullable=False, index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="generated",
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    client: Mapped["Client"] = relationship("Client", lazy="selectin")
