"""Apartment ledger services."""

from apartment_ledger.services.balance import BalanceAccumulator
from apartment_ledger.services.errors import (
    ConflictRetryError,
    IllegalTransitionError,
    InternalLedgerError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
)
from apartment_ledger.services.ledger_service import LedgerService, PaymentPatch
from apartment_ledger.services.overdue_sweeper import OverdueSweeper
from apartment_ledger.services.reconciliation import ReconciliationService
from apartment_ledger.services.status_policy import PaymentMethod, PaymentStatus, StatusPolicy

__all__ = [
    "BalanceAccumulator",
    "ConflictRetryError",
    "IllegalTransitionError",
    "InternalLedgerError",
    "InvalidArgumentError",
    "LedgerError",
    "LedgerService",
    "NotFoundError",
    "OverdueSweeper",
    "PaymentMethod",
    "PaymentPatch",
    "PaymentStatus",
    "ReconciliationService",
    "StatusPolicy",
]
