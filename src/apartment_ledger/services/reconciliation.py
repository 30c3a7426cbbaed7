"""Balance reconciliation - compare stored balances with payment rows.

The stored ``household.balance`` must equal the sum of the household's
pending and overdue payments. This check reports any household where it
does not, and never corrects the value itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apartment_ledger.services.repositories import HouseholdRepository, PaymentRepository

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class BalanceDrift:
    """A household whose stored balance disagrees with its payments."""

    household_id: UUID
    unit: str
    stored: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored - self.expected


@dataclass
class ReconciliationResult:
    """Result of a reconciliation run."""

    households_checked: int = 0
    drifts: list[BalanceDrift] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every stored balance matched."""
        return not self.drifts


class ReconciliationService:
    """Recomputes household balances from payment rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def compute_expected_balances(self) -> dict[UUID, Decimal]:
        """Outstanding total per household (households with none are omitted)."""
        async with self.session_factory() as session:
            totals = await PaymentRepository(session).outstanding_totals()
        return {household_id: total.quantize(CENT) for household_id, total in totals.items()}

    async def check(self) -> ReconciliationResult:
        """Compare every household's stored balance with its expected balance."""
        async with self.session_factory() as session:
            async with session.begin():
                households = await HouseholdRepository(session).list_all()
                totals = await PaymentRepository(session).outstanding_totals()

        result = ReconciliationResult(households_checked=len(households))
        for household in households:
            stored = Decimal(household.balance).quantize(CENT)
            expected = totals.get(household.household_id, Decimal("0")).quantize(CENT)
            if stored != expected:
                result.drifts.append(
                    BalanceDrift(
                        household_id=household.household_id,
                        unit=household.unit,
                        stored=stored,
                        expected=expected,
                    )
                )

        if result.drifts:
            logger.warning(
                "Balance reconciliation found %d drifting household(s) out of %d",
                len(result.drifts),
                result.households_checked,
            )
        else:
            logger.info(
                "Balance reconciliation matched %d household(s)", result.households_checked
            )
        return result
