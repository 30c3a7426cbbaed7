"""Fee category model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apartment_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from apartment_ledger.models.payment import Payment


class FeeCategory(Base, TimestampMixin):
    """Recurring fee definition (management fee, cleaning, ...).

    ``frequency`` is informational; billing runs are started explicitly.
    """

    __tablename__ = "fee_category"

    fee_category_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    frequency: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="fee_category_amount_positive"),
        CheckConstraint(
            "frequency IN ('monthly', 'quarterly', 'annual', 'one-time')",
            name="fee_category_frequency_check",
        ),
    )

    # Relationships
    payments: Mapped[list[Payment]] = relationship(back_populates="fee_category")
