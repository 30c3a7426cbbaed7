"""Ledger error taxonomy."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error the ledger raises to its callers."""

    code = "LEDGER_ERROR"


class NotFoundError(LedgerError):
    """Household, fee category, or payment does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidArgumentError(LedgerError):
    """Non-positive amount, missing required field, or malformed value."""

    code = "INVALID_ARGUMENT"


class IllegalTransitionError(LedgerError):
    """Raised when a status change violates the payment status policy."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status: str | None, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Illegal transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConflictRetryError(LedgerError):
    """Concurrent writes kept failing to serialize after every retry."""

    code = "CONFLICT_RETRY"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} failed to serialize after {attempts} attempt(s)"
        )


class InternalLedgerError(LedgerError):
    """Storage failure; the transaction was rolled back."""

    code = "INTERNAL_ERROR"
