"""Overdue sweep: pending payments past their due date become overdue."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apartment_ledger.models import Payment
from apartment_ledger.services.balance import BalanceAccumulator
from apartment_ledger.services.errors import InternalLedgerError, InvalidArgumentError
from apartment_ledger.services.repositories import PaymentRepository
from apartment_ledger.services.status_policy import PaymentStatus, StatusPolicy

logger = logging.getLogger(__name__)


class OverdueSweeper:
    """Applies StatusPolicy.effective_status to stored payments.

    Two entry points share the same policy function:
    - sweep: eager pass writing ``overdue`` to stale pending rows
    - derive: on-read status for display, no writes

    The pending → overdue flip never touches household balances; both
    statuses are outstanding.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()

    def derive(self, payment: Payment, as_of: date | None = None) -> PaymentStatus:
        """Status a payment displays as on ``as_of`` (default today)."""
        return StatusPolicy.effective_status(
            payment.status, payment.due_date, as_of or self.today()
        )

    async def sweep(self, as_of: date | None = None) -> int:
        """Mark every pending payment due before ``as_of`` as overdue.

        Idempotent: a second pass on the same date updates nothing. A date
        after today is rejected; it would store statuses that reads still
        derive as pending.

        Returns:
            Number of payments flipped to overdue
        """
        today = self.today()
        as_of = as_of or today
        if as_of > today:
            raise InvalidArgumentError(
                f"Cannot sweep as of {as_of}, which is after today ({today})"
            )

        one = Decimal("1")
        if BalanceAccumulator.delta(PaymentStatus.PENDING, one, PaymentStatus.OVERDUE, one):
            raise InternalLedgerError("pending → overdue must not change the balance")

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    count = await PaymentRepository(session).mark_overdue(as_of)
        except DBAPIError as exc:
            raise InternalLedgerError(f"Overdue sweep failed: {exc.orig}") from exc

        logger.info("Overdue sweep as of %s updated %d payment(s)", as_of, count)
        return count

    async def run_periodically(
        self, interval_seconds: float, stop_event: asyncio.Event
    ) -> None:
        """Sweep on a timer until ``stop_event`` is set.

        A failed pass is logged and retried on the next tick.
        """
        while not stop_event.is_set():
            try:
                await self.sweep()
            except Exception:
                logger.exception("Scheduled overdue sweep failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue
