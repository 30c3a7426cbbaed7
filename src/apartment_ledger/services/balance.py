"""Household balance deltas implied by payment changes."""

from __future__ import annotations

from decimal import Decimal

from apartment_ledger.services.status_policy import StatusPolicy

ZERO = Decimal("0")


class BalanceAccumulator:
    """Signed amount to add to ``household.balance`` for a payment change.

    A side that does not exist (before create, after delete) is passed as
    ``None`` and contributes nothing.
    """

    @staticmethod
    def delta(
        old_status: str | None,
        old_amount: Decimal,
        new_status: str | None,
        new_amount: Decimal,
    ) -> Decimal:
        """Compute the balance delta for one payment change.

        - outstanding → outstanding: new_amount - old_amount
        - outstanding → collected: -old_amount (the pre-edit amount)
        - collected → outstanding: +new_amount
        - collected → collected: 0
        """
        old_outstanding = StatusPolicy.is_outstanding(old_status)
        new_outstanding = StatusPolicy.is_outstanding(new_status)

        if old_outstanding and new_outstanding:
            return new_amount - old_amount
        if old_outstanding:
            return -old_amount
        if new_outstanding:
            return new_amount
        return ZERO

    @classmethod
    def create_delta(cls, status: str, amount: Decimal) -> Decimal:
        """Delta for inserting a payment."""
        return cls.delta(None, ZERO, status, amount)

    @classmethod
    def delete_delta(cls, status: str, amount: Decimal) -> Decimal:
        """Delta for removing a payment."""
        return cls.delta(status, amount, None, ZERO)
