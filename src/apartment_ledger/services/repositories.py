"""Persistence boundary for ledger rows.

Repositories operate on a session owned by the caller and never commit.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from apartment_ledger.models import FeeCategory, Household, Payment
from apartment_ledger.services.status_policy import PaymentStatus


class HouseholdRepository:
    """Household reads and balance writes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, household_id: UUID, for_update: bool = False) -> Household | None:
        """Load a household, optionally locking its row until commit."""
        query = select(Household).where(Household.household_id == household_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_active(self, for_update: bool = False) -> list[Household]:
        """Active households in a stable order so batch locks never deadlock."""
        query = (
            select(Household)
            .where(Household.status == "active")
            .order_by(Household.household_id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_all(self) -> list[Household]:
        result = await self.session.execute(select(Household).order_by(Household.unit))
        return list(result.scalars().all())

    async def apply_balance_delta(self, household_id: UUID, delta: Decimal) -> None:
        """Increment the stored balance in SQL so no stale value is written back."""
        await self.session.execute(
            update(Household)
            .where(Household.household_id == household_id)
            .values(balance=Household.balance + delta)
            .execution_options(synchronize_session=False)
        )


class FeeCategoryRepository:
    """Fee category reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, fee_category_id: UUID) -> FeeCategory | None:
        return await self.session.get(FeeCategory, fee_category_id)


class PaymentRepository:
    """Single-row payment CRUD plus the bulk overdue flip.

    Payments are returned with their household and fee category loaded,
    so callers can read them after the session is closed.
    """

    SUMMARIES = (selectinload(Payment.household), selectinload(Payment.fee_category))

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, payment_id: UUID, for_update: bool = False) -> Payment | None:
        query = (
            select(Payment)
            .where(Payment.payment_id == payment_id)
            .options(*self.SUMMARIES)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, payment: Payment) -> Payment:
        """Insert a payment and reload it with server-generated columns."""
        self.session.add(payment)
        await self.session.flush()
        return await self._reload(payment)

    async def save(self, payment: Payment) -> Payment:
        """Flush pending changes to an already loaded payment."""
        await self.session.flush()
        return await self._reload(payment)

    async def delete(self, payment: Payment) -> None:
        await self.session.delete(payment)
        await self.session.flush()

    async def find_all(
        self,
        as_of: date,
        status: PaymentStatus | None = None,
        household_id: UUID | None = None,
        fee_category_id: UUID | None = None,
    ) -> list[Payment]:
        """List payments newest due date first.

        The status filter matches the effective status on ``as_of``, so rows
        the sweeper has not reached yet are filtered the way they display.
        """
        query = select(Payment).options(*self.SUMMARIES)

        if status is not None:
            query = query.where(self._effective_status_clause(status, as_of))
        if household_id is not None:
            query = query.where(Payment.household_id == household_id)
        if fee_category_id is not None:
            query = query.where(Payment.fee_category_id == fee_category_id)

        query = query.order_by(Payment.due_date.desc(), Payment.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_overdue(self, as_of: date) -> int:
        """Flip every pending payment due before ``as_of`` to overdue.

        Returns count of updated rows.
        """
        result = await self.session.execute(
            update(Payment)
            .where(
                Payment.status == PaymentStatus.PENDING.value,
                Payment.due_date < as_of,
            )
            .values(status=PaymentStatus.OVERDUE.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def outstanding_totals(self) -> dict[UUID, Decimal]:
        """Sum of pending and overdue amounts per household."""
        result = await self.session.execute(
            select(Payment.household_id, func.sum(Payment.amount))
            .where(Payment.status != PaymentStatus.COLLECTED.value)
            .group_by(Payment.household_id)
        )
        return {household_id: Decimal(str(total)) for household_id, total in result.all()}

    async def _reload(self, payment: Payment) -> Payment:
        result = await self.session.execute(
            select(Payment)
            .where(Payment.payment_id == payment.payment_id)
            .options(*self.SUMMARIES)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @staticmethod
    def _effective_status_clause(status: PaymentStatus, as_of: date) -> ColumnElement[bool]:
        if status == PaymentStatus.COLLECTED:
            return Payment.status == PaymentStatus.COLLECTED.value
        not_collected = Payment.status != PaymentStatus.COLLECTED.value
        if status == PaymentStatus.OVERDUE:
            return and_(not_collected, Payment.due_date < as_of)
        return and_(not_collected, Payment.due_date >= as_of)
