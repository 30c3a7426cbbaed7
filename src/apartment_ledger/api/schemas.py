"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from apartment_ledger.models import Payment
from apartment_ledger.services.reconciliation import ReconciliationResult


# ============================================================================
# Payment schemas
# ============================================================================


class PaymentCreate(BaseModel):
    """Schema for creating a payment."""

    household_id: UUID
    fee_category_id: UUID
    amount: Decimal
    due_date: date
    status: str | None = None
    payment_method: str | None = None
    notes: str | None = None


class PaymentUpdate(BaseModel):
    """Schema for updating a payment. Omitted fields are left unchanged."""

    status: str | None = None
    amount: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None


class HouseholdSummary(BaseModel):
    """Household a payment belongs to."""

    model_config = ConfigDict(from_attributes=True)

    household_id: UUID
    unit: str
    owner_name: str


class FeeCategorySummary(BaseModel):
    """Fee category a payment charges."""

    model_config = ConfigDict(from_attributes=True)

    fee_category_id: UUID
    name: str


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: UUID
    household_id: UUID
    fee_category_id: UUID
    amount: Decimal
    due_date: date
    status: str
    payment_date: datetime | None = None
    payment_method: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    household: HouseholdSummary
    fee_category: FeeCategorySummary

    @classmethod
    def from_payment(cls, payment: Payment, status: str) -> "PaymentResponse":
        """Build a response showing ``status`` instead of the stored value."""
        response = cls.model_validate(payment)
        response.status = str(getattr(status, "value", status))
        return response


class PaymentListResponse(BaseModel):
    """Schema for listing payments."""

    items: list[PaymentResponse]
    total: int


# ============================================================================
# Bulk operation schemas
# ============================================================================


class GenerateMonthlyRequest(BaseModel):
    """Schema for generating one month of payments for a fee category."""

    fee_category_id: UUID
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=1, le=9999)


class CountResponse(BaseModel):
    """Schema for bulk operations reporting how many rows they touched."""

    message: str
    count: int


class MessageResponse(BaseModel):
    """Schema for plain confirmation messages."""

    message: str


# ============================================================================
# Reconciliation schemas
# ============================================================================


class BalanceDriftResponse(BaseModel):
    """Schema for one household whose balance disagrees with its payments."""

    household_id: UUID
    unit: str
    stored: Decimal
    expected: Decimal
    difference: Decimal


class ReconciliationResponse(BaseModel):
    """Schema for a reconciliation report."""

    success: bool
    households_checked: int
    drifts: list[BalanceDriftResponse]

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "ReconciliationResponse":
        return cls(
            success=result.success,
            households_checked=result.households_checked,
            drifts=[
                BalanceDriftResponse(
                    household_id=d.household_id,
                    unit=d.unit,
                    stored=d.stored,
                    expected=d.expected,
                    difference=d.difference,
                )
                for d in result.drifts
            ],
        )


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str
