"""ORM models for the apartment ledger."""

from apartment_ledger.models.base import Base, TimestampMixin
from apartment_ledger.models.fee_category import FeeCategory
from apartment_ledger.models.household import Household
from apartment_ledger.models.payment import Payment

__all__ = [
    "Base",
    "TimestampMixin",
    "FeeCategory",
    "Household",
    "Payment",
]
