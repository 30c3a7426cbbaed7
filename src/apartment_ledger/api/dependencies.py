"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apartment_ledger.config import get_settings
from apartment_ledger.database import init_db
from apartment_ledger.services.ledger_service import LedgerService
from apartment_ledger.services.overdue_sweeper import OverdueSweeper
from apartment_ledger.services.reconciliation import ReconciliationService


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory every service opens its transactions from."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_ledger_service(factory: SessionFactory) -> LedgerService:
    settings = get_settings()
    return LedgerService(
        factory,
        max_retries=settings.ledger_max_retries,
        default_payment_method=settings.default_payment_method,
    )


def get_overdue_sweeper(factory: SessionFactory) -> OverdueSweeper:
    return OverdueSweeper(factory)


def get_reconciliation_service(factory: SessionFactory) -> ReconciliationService:
    return ReconciliationService(factory)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Ledger = Annotated[LedgerService, Depends(get_ledger_service)]
Sweeper = Annotated[OverdueSweeper, Depends(get_overdue_sweeper)]
Reconciliation = Annotated[ReconciliationService, Depends(get_reconciliation_service)]
