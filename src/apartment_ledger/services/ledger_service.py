"""Ledger Service - payment mutations paired with household balance updates.

Every public mutation runs as one unit of work:
- the household row is locked before its balance is adjusted
- the payment write and the balance delta commit together or not at all
- serialization failures are retried a bounded number of times
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apartment_ledger.models import FeeCategory, Household, Payment
from apartment_ledger.services.balance import BalanceAccumulator
from apartment_ledger.services.errors import (
    ConflictRetryError,
    InternalLedgerError,
    InvalidArgumentError,
    NotFoundError,
)
from apartment_ledger.services.repositories import (
    FeeCategoryRepository,
    HouseholdRepository,
    PaymentRepository,
)
from apartment_ledger.services.status_policy import (
    PaymentStatus,
    StatusPolicy,
    parse_status,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE serialization_failure / deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


@dataclass(frozen=True)
class PaymentPatch:
    """Fields of a payment update. ``None`` leaves a field unchanged."""

    status: str | None = None
    amount: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None


def last_day_of(year: int, month: int) -> date:
    """Last calendar day of a month (1-based)."""
    return date(year, month, calendar.monthrange(year, month)[1])


def is_retryable(exc: DBAPIError) -> bool:
    """Check if a database error is a transient serialization conflict."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


class LedgerService:
    """Owns every write to ``household.balance``.

    Operations:
    - create_payment: insert a payment and charge its household
    - update_payment: change status/amount/method/notes with the matching delta
    - delete_payment: remove a payment and release what it still owed
    - generate_monthly: charge one fee to every active household atomically
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_retries: int = 3,
        default_payment_method: str = "cash",
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.max_retries = max(1, max_retries)
        self.default_payment_method = default_payment_method
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def today(self) -> date:
        """Current date at UTC according to the service clock."""
        return self.clock().astimezone(timezone.utc).date()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_payment(
        self,
        household_id: UUID,
        fee_category_id: UUID,
        amount: Decimal | str | int | float,
        due_date: date | None,
        status: str = PaymentStatus.PENDING,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Create a payment and apply its balance delta in one transaction.

        Raises:
            InvalidArgumentError: non-positive amount, missing due date, unknown status
            NotFoundError: household or fee category missing
            IllegalTransitionError: collected with an unknown payment method
        """
        amount = self._parse_amount(amount)
        if due_date is None:
            raise InvalidArgumentError("Due date is required")
        initial_status = parse_status(status or PaymentStatus.PENDING)

        async def work(session: AsyncSession) -> Payment:
            households = HouseholdRepository(session)
            household = await households.get(household_id, for_update=True)
            if household is None:
                raise NotFoundError("Household", household_id)

            category = await FeeCategoryRepository(session).get(fee_category_id)
            if category is None:
                raise NotFoundError("Fee category", fee_category_id)

            payment = await self._insert_payment(
                session,
                household,
                category,
                amount=amount,
                due_date=due_date,
                status=initial_status,
                payment_method=payment_method,
                notes=notes,
            )
            return payment

        payment = await self._run("create_payment", work)
        logger.info(
            "Created payment %s for household %s (%s, %s)",
            payment.payment_id,
            payment.household_id,
            payment.status,
            payment.amount,
        )
        return payment

    async def update_payment(self, payment_id: UUID, patch: PaymentPatch) -> Payment:
        """Update a payment and adjust its household balance in one transaction.

        Into collected: payment_date = now, payment_method = patch method or
        the default. Out of collected: both fields are cleared whatever the
        patch says.
        """
        new_amount_input = None if patch.amount is None else self._parse_amount(patch.amount)
        requested_status = None if patch.status is None else parse_status(patch.status)

        async def work(session: AsyncSession) -> tuple[Payment, Decimal]:
            payments = PaymentRepository(session)
            payment = await payments.get(payment_id, for_update=True)
            if payment is None:
                raise NotFoundError("Payment", payment_id)

            households = HouseholdRepository(session)
            household = await households.get(payment.household_id, for_update=True)
            if household is None:
                raise NotFoundError("Household", payment.household_id)

            as_of = self.today()
            old_status = StatusPolicy.effective_status(payment.status, payment.due_date, as_of)
            old_amount = payment.amount
            new_amount = new_amount_input if new_amount_input is not None else old_amount

            target = requested_status or old_status
            if target == PaymentStatus.COLLECTED:
                new_status = PaymentStatus.COLLECTED
                if old_status == PaymentStatus.COLLECTED:
                    payment_date = payment.payment_date
                    method = (
                        patch.payment_method
                        if patch.payment_method is not None
                        else payment.payment_method
                    )
                else:
                    payment_date = self.clock()
                    method = (
                        patch.payment_method
                        if patch.payment_method is not None
                        else self.default_payment_method
                    )
            else:
                new_status = StatusPolicy.effective_status(target, payment.due_date, as_of)
                payment_date = None
                method = None

            StatusPolicy.validate_transition(old_status, new_status, payment_date, method)

            delta = BalanceAccumulator.delta(old_status, old_amount, new_status, new_amount)
            if delta:
                await households.apply_balance_delta(household.household_id, delta)

            payment.status = new_status.value
            payment.amount = new_amount
            payment.payment_date = payment_date
            payment.payment_method = method
            if patch.notes is not None:
                payment.notes = patch.notes

            return await payments.save(payment), delta

        payment, delta = await self._run("update_payment", work)
        logger.info(
            "Updated payment %s to %s (balance delta %s)",
            payment.payment_id,
            payment.status,
            delta,
        )
        return payment

    async def delete_payment(self, payment_id: UUID) -> None:
        """Delete a payment, releasing its amount if it was still outstanding."""

        async def work(session: AsyncSession) -> Decimal:
            payments = PaymentRepository(session)
            payment = await payments.get(payment_id, for_update=True)
            if payment is None:
                raise NotFoundError("Payment", payment_id)

            households = HouseholdRepository(session)
            await households.get(payment.household_id, for_update=True)

            delta = BalanceAccumulator.delete_delta(payment.status, payment.amount)
            if delta:
                await households.apply_balance_delta(payment.household_id, delta)
            await payments.delete(payment)
            return delta

        delta = await self._run("delete_payment", work)
        logger.info("Deleted payment %s (balance delta %s)", payment_id, delta)

    async def generate_monthly(
        self,
        fee_category_id: UUID,
        month: int | None = None,
        year: int | None = None,
    ) -> int:
        """Charge a fee category to every active household for one month.

        The whole batch is one transaction: if any insert or balance update
        fails, no payment is created and no balance changes.

        Returns:
            Number of payments created
        """
        as_of = self.today()
        month = as_of.month if month is None else month
        year = as_of.year if year is None else year
        if not 1 <= month <= 12:
            raise InvalidArgumentError(f"Month must be between 1 and 12, got {month}")
        if not 1 <= year <= 9999:
            raise InvalidArgumentError(f"Invalid year {year}")
        due_date = last_day_of(year, month)

        async def work(session: AsyncSession) -> int:
            category = await FeeCategoryRepository(session).get(fee_category_id)
            if category is None:
                raise NotFoundError("Fee category", fee_category_id)

            households = await HouseholdRepository(session).list_active(for_update=True)
            for household in households:
                await self._insert_payment(
                    session,
                    household,
                    category,
                    amount=category.amount,
                    due_date=due_date,
                    status=PaymentStatus.PENDING,
                )
            return len(households)

        try:
            count = await self._run("generate_monthly", work)
        except (InternalLedgerError, ConflictRetryError):
            logger.exception(
                "Monthly generation for fee category %s (%04d-%02d) rolled back",
                fee_category_id,
                year,
                month,
            )
            raise

        logger.info(
            "Generated %d payment(s) for fee category %s due %s",
            count,
            fee_category_id,
            due_date,
        )
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_payment(self, payment_id: UUID) -> Payment:
        async with self.session_factory() as session:
            payment = await PaymentRepository(session).get(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_payments(
        self,
        status: str | None = None,
        household_id: UUID | None = None,
        fee_category_id: UUID | None = None,
    ) -> list[Payment]:
        """List payments, filtering on the status they display as today."""
        status_filter = None if status in (None, "all") else parse_status(status)
        async with self.session_factory() as session:
            return await PaymentRepository(session).find_all(
                self.today(),
                status=status_filter,
                household_id=household_id,
                fee_category_id=fee_category_id,
            )

    async def get_household(self, household_id: UUID) -> Household:
        async with self.session_factory() as session:
            household = await HouseholdRepository(session).get(household_id)
        if household is None:
            raise NotFoundError("Household", household_id)
        return household

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _insert_payment(
        self,
        session: AsyncSession,
        household: Household,
        category: FeeCategory,
        *,
        amount: Decimal,
        due_date: date,
        status: PaymentStatus,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Insert one payment and charge the (already locked) household."""
        if status == PaymentStatus.COLLECTED:
            payment_date = self.clock()
            method = payment_method if payment_method is not None else self.default_payment_method
        else:
            status = StatusPolicy.effective_status(status, due_date, self.today())
            payment_date = None
            method = None

        StatusPolicy.validate_transition(None, status, payment_date, method)

        payment = Payment(
            household_id=household.household_id,
            fee_category_id=category.fee_category_id,
            amount=amount,
            due_date=due_date,
            status=status.value,
            payment_date=payment_date,
            payment_method=method,
            notes=notes,
        )

        delta = BalanceAccumulator.create_delta(status, amount)
        if delta:
            await HouseholdRepository(session).apply_balance_delta(household.household_id, delta)

        return await PaymentRepository(session).add(payment)

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``work`` in its own transaction, retrying serialization conflicts."""
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        return await work(session)
            except DBAPIError as exc:
                if not is_retryable(exc):
                    raise InternalLedgerError(f"{operation} failed: {exc.orig}") from exc
                if attempt >= self.max_retries:
                    raise ConflictRetryError(operation, attempt) from exc
                logger.warning(
                    "%s hit a write conflict (attempt %d/%d), retrying",
                    operation,
                    attempt,
                    self.max_retries,
                )

    @staticmethod
    def _parse_amount(value: Decimal | str | int | float | None) -> Decimal:
        if value is None or value == "":
            raise InvalidArgumentError("Amount is required")
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidArgumentError(f"Malformed amount '{value}'") from None
        if not amount.is_finite() or amount <= 0:
            raise InvalidArgumentError("Amount must be positive")
        if amount.as_tuple().exponent < -2:
            raise InvalidArgumentError("Amount cannot have more than 2 decimal places")
        return amount
