"""Fee payment model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apartment_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from apartment_ledger.models.fee_category import FeeCategory
    from apartment_ledger.models.household import Household


class Payment(Base, TimestampMixin):
    """One fee obligation of a household.

    ``household_id`` and ``fee_category_id`` never change after insert.
    ``payment_date`` and ``payment_method`` are set exactly when the
    payment is collected.
    """

    __tablename__ = "payment"

    payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    household_id: Mapped[UUID] = mapped_column(
        ForeignKey("household.household_id", ondelete="RESTRICT"),
        nullable=False,
    )
    fee_category_id: Mapped[UUID] = mapped_column(
        ForeignKey("fee_category.fee_category_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    payment_date: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="payment_amount_positive"),
        CheckConstraint(
            "status IN ('pending', 'overdue', 'collected')",
            name="payment_status_check",
        ),
        CheckConstraint(
            "(status = 'collected' AND payment_date IS NOT NULL AND payment_method IS NOT NULL)"
            " OR (status <> 'collected' AND payment_date IS NULL AND payment_method IS NULL)",
            name="payment_collected_fields_check",
        ),
        Index("ix_payment_status_due_date", "status", "due_date"),
        Index("ix_payment_household_id", "household_id"),
    )

    # Relationships
    household: Mapped[Household] = relationship(back_populates="payments")
    fee_category: Mapped[FeeCategory] = relationship(back_populates="payments")
