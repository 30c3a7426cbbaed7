"""Payment status policy with transition validation."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from apartment_ledger.services.errors import IllegalTransitionError, InvalidArgumentError


class PaymentStatus(str, Enum):
    """Payment status values."""

    PENDING = "pending"
    OVERDUE = "overdue"
    COLLECTED = "collected"


class PaymentMethod(str, Enum):
    """Accepted ways of collecting a payment."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    ONLINE = "online"


def parse_status(value: str | PaymentStatus) -> PaymentStatus:
    """Coerce a raw status value, raising InvalidArgumentError if unknown."""
    try:
        return PaymentStatus(value)
    except ValueError:
        raise InvalidArgumentError(f"Unknown payment status '{value}'") from None


class StatusPolicy:
    """Decides which status a payment should carry and which changes are legal.

    Lifecycle:
    - pending → overdue (due date elapses)
    - pending → collected
    - overdue → collected
    - collected → pending | overdue (reversal, per effective_status)

    Every change of status is allowed as long as the collection fields
    follow it: a collected payment carries payment_date and a known
    payment_method, any other payment carries neither.
    """

    OUTSTANDING = frozenset({PaymentStatus.PENDING, PaymentStatus.OVERDUE})

    PAYMENT_METHODS = frozenset(m.value for m in PaymentMethod)

    @classmethod
    def is_outstanding(cls, status: str | None) -> bool:
        """Check if a status still contributes to the household balance."""
        return status in cls.OUTSTANDING

    @classmethod
    def effective_status(
        cls, stored_status: str, due_date: date, as_of: date
    ) -> PaymentStatus:
        """Status a payment should have on ``as_of``.

        Collected is kept until a user reverses it. Anything else is overdue
        once the due date is strictly before ``as_of``.
        """
        if stored_status == PaymentStatus.COLLECTED:
            return PaymentStatus.COLLECTED
        if isinstance(due_date, datetime):
            due_date = due_date.date()
        if due_date < as_of:
            return PaymentStatus.OVERDUE
        return PaymentStatus.PENDING

    @classmethod
    def is_legal_transition(
        cls,
        from_status: str | None,
        to_status: str,
        payment_date: datetime | None,
        payment_method: str | None,
    ) -> bool:
        """Check if moving to ``to_status`` with these collection fields is valid."""
        return not cls.transition_errors(from_status, to_status, payment_date, payment_method)

    @classmethod
    def validate_transition(
        cls,
        from_status: str | None,
        to_status: str,
        payment_date: datetime | None,
        payment_method: str | None,
    ) -> None:
        """Validate a transition, raising IllegalTransitionError if invalid."""
        errors = cls.transition_errors(from_status, to_status, payment_date, payment_method)
        if errors:
            raise IllegalTransitionError(from_status, to_status, "; ".join(errors))

    @classmethod
    def transition_errors(
        cls,
        from_status: str | None,
        to_status: str,
        payment_date: datetime | None,
        payment_method: str | None,
    ) -> list[str]:
        """Return error messages for a transition (empty if valid)."""
        errors: list[str] = []

        if to_status not in (s.value for s in PaymentStatus):
            errors.append(f"Unknown target status '{to_status}'")
            return errors

        if to_status == PaymentStatus.COLLECTED:
            if payment_date is None:
                errors.append("Collected payment requires a payment date")
            if not payment_method:
                errors.append("Collected payment requires a payment method")
            elif payment_method not in cls.PAYMENT_METHODS:
                errors.append(f"Unknown payment method '{payment_method}'")
        else:
            if payment_date is not None or payment_method is not None:
                errors.append(
                    "Payment date and method must be cleared when not collected"
                )

        return errors

    @classmethod
    def is_reversal(cls, from_status: str | None, to_status: str) -> bool:
        """Check if this transition un-collects a payment."""
        return from_status == PaymentStatus.COLLECTED and cls.is_outstanding(to_status)
