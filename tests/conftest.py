"""Pytest fixtures for apartment ledger tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from apartment_ledger.database import create_schema, create_session_factory
from apartment_ledger.models import FeeCategory, Household, Payment
from apartment_ledger.services.ledger_service import LedgerService
from apartment_ledger.services.overdue_sweeper import OverdueSweeper
from apartment_ledger.services.reconciliation import ReconciliationService

# Fixed clock so due-date comparisons are deterministic
NOW = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


def fixed_clock() -> datetime:
    return NOW


def clock_on(day: date) -> Callable[[], datetime]:
    """Clock pinned to the same time of day as NOW, on another date."""
    moved = datetime.combine(day, NOW.timetz())
    return lambda: moved


@dataclass
class LedgerTestData:
    """Seeds and inspects ledger rows outside of the service under test."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create_household(
        self,
        unit: str,
        balance: Decimal = Decimal("0"),
        status: str = "active",
        owner_name: str | None = None,
    ) -> Household:
        async with self.session_factory() as session:
            household = Household(
                unit=unit,
                owner_name=owner_name or f"Owner {unit}",
                status=status,
                balance=balance,
            )
            session.add(household)
            await session.commit()
            await session.refresh(household)
            return household

    async def create_fee_category(
        self,
        name: str = "Management fee",
        amount: Decimal = Decimal("50.00"),
        frequency: str = "monthly",
    ) -> FeeCategory:
        async with self.session_factory() as session:
            category = FeeCategory(name=name, amount=amount, frequency=frequency)
            session.add(category)
            await session.commit()
            await session.refresh(category)
            return category

    async def insert_payment_row(
        self,
        household_id: UUID,
        fee_category_id: UUID,
        amount: Decimal,
        due_date: date,
        status: str = "pending",
    ) -> Payment:
        """Insert a payment without touching the balance (simulates stale rows)."""
        async with self.session_factory() as session:
            payment = Payment(
                household_id=household_id,
                fee_category_id=fee_category_id,
                amount=amount,
                due_date=due_date,
                status=status,
                payment_date=NOW if status == "collected" else None,
                payment_method="cash" if status == "collected" else None,
            )
            session.add(payment)
            await session.commit()
            await session.refresh(payment)
            return payment

    async def balance(self, household_id: UUID) -> Decimal:
        async with self.session_factory() as session:
            value = await session.scalar(
                select(Household.balance).where(Household.household_id == household_id)
            )
            return Decimal(value)

    async def payment(self, payment_id: UUID) -> Payment | None:
        async with self.session_factory() as session:
            return await session.get(Payment, payment_id)

    async def payment_count(self) -> int:
        async with self.session_factory() as session:
            return await session.scalar(select(func.count()).select_from(Payment)) or 0

    async def statuses(self) -> dict[UUID, str]:
        async with self.session_factory() as session:
            result = await session.execute(select(Payment.payment_id, Payment.status))
            return dict(result.all())


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def test_data(session_factory: async_sessionmaker[AsyncSession]) -> LedgerTestData:
    return LedgerTestData(session_factory)


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession]) -> LedgerService:
    return LedgerService(session_factory, max_retries=3, clock=fixed_clock)


@pytest.fixture
def sweeper(session_factory: async_sessionmaker[AsyncSession]) -> OverdueSweeper:
    return OverdueSweeper(session_factory, clock=fixed_clock)


@pytest.fixture
def reconciliation(session_factory: async_sessionmaker[AsyncSession]) -> ReconciliationService:
    return ReconciliationService(session_factory)


@pytest_asyncio.fixture
async def household(test_data: LedgerTestData) -> Household:
    return await test_data.create_household("A-101")


@pytest_asyncio.fixture
async def fee_category(test_data: LedgerTestData) -> FeeCategory:
    return await test_data.create_fee_category()
