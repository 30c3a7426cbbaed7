"""Household model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apartment_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from apartment_ledger.models.payment import Payment


class Household(Base, TimestampMixin):
    """An apartment unit and the fee balance it owes.

    ``balance`` is denormalized: it must equal the sum of the household's
    pending and overdue payment amounts. Only the ledger writes it.
    """

    __tablename__ = "household"

    household_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    unit: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    owner_name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive')",
            name="household_status_check",
        ),
    )

    # Relationships
    payments: Mapped[list[Payment]] = relationship(back_populates="household")
