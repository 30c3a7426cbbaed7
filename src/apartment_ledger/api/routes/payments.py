"""Payment API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from apartment_ledger.api.dependencies import Ledger, Reconciliation, Sweeper
from apartment_ledger.api.schemas import (
    CountResponse,
    ErrorResponse,
    GenerateMonthlyRequest,
    MessageResponse,
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentUpdate,
    ReconciliationResponse,
)
from apartment_ledger.services.ledger_service import PaymentPatch

router = APIRouter(prefix="/payments", tags=["payments"])


# ============================================================================
# Collection endpoints
# ============================================================================


@router.get(
    "",
    response_model=PaymentListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_payments(
    ledger: Ledger,
    sweeper: Sweeper,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    household_id: UUID | None = None,
    fee_category_id: UUID | None = None,
) -> PaymentListResponse:
    """List payments with optional filters, newest due date first."""
    payments = await ledger.list_payments(
        status=status_filter,
        household_id=household_id,
        fee_category_id=fee_category_id,
    )
    as_of = ledger.today()
    items = [PaymentResponse.from_payment(p, sweeper.derive(p, as_of)) for p in payments]
    return PaymentListResponse(items=items, total=len(items))


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_payment(
    ledger: Ledger,
    sweeper: Sweeper,
    payload: PaymentCreate,
) -> PaymentResponse:
    """Create a payment and charge its household."""
    payment = await ledger.create_payment(
        household_id=payload.household_id,
        fee_category_id=payload.fee_category_id,
        amount=payload.amount,
        due_date=payload.due_date,
        status=payload.status or "pending",
        payment_method=payload.payment_method,
        notes=payload.notes,
    )
    return PaymentResponse.from_payment(payment, sweeper.derive(payment))


@router.put(
    "",
    response_model=CountResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def generate_monthly_payments(
    ledger: Ledger,
    payload: GenerateMonthlyRequest,
) -> CountResponse:
    """Generate one month of payments for every active household."""
    count = await ledger.generate_monthly(
        payload.fee_category_id,
        month=payload.month,
        year=payload.year,
    )
    return CountResponse(message=f"Created {count} payments", count=count)


# ============================================================================
# Maintenance endpoints
# ============================================================================


@router.post("/update-overdue", response_model=CountResponse)
async def update_overdue_payments(sweeper: Sweeper) -> CountResponse:
    """Mark every pending payment past its due date as overdue, as of today."""
    count = await sweeper.sweep()
    return CountResponse(message=f"Updated {count} payments to overdue", count=count)


@router.get("/update-overdue", response_model=CountResponse)
async def update_overdue_payments_cron(sweeper: Sweeper) -> CountResponse:
    """Same as POST, for schedulers that can only issue GET requests."""
    return await update_overdue_payments(sweeper)


@router.get("/reconciliation", response_model=ReconciliationResponse)
async def reconcile_balances(reconciliation: Reconciliation) -> ReconciliationResponse:
    """Report households whose stored balance disagrees with their payments."""
    result = await reconciliation.check()
    return ReconciliationResponse.from_result(result)


# ============================================================================
# Single payment endpoints
# ============================================================================


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payment(
    ledger: Ledger,
    sweeper: Sweeper,
    payment_id: Annotated[UUID, Path()],
) -> PaymentResponse:
    """Get a specific payment by ID."""
    payment = await ledger.get_payment(payment_id)
    return PaymentResponse.from_payment(payment, sweeper.derive(payment))


@router.put(
    "/{payment_id}",
    response_model=PaymentResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_payment(
    ledger: Ledger,
    sweeper: Sweeper,
    payment_id: Annotated[UUID, Path()],
    payload: PaymentUpdate,
) -> PaymentResponse:
    """Update status, amount, payment method or notes of a payment."""
    payment = await ledger.update_payment(
        payment_id,
        PaymentPatch(
            status=payload.status,
            amount=payload.amount,
            payment_method=payload.payment_method,
            notes=payload.notes,
        ),
    )
    return PaymentResponse.from_payment(payment, sweeper.derive(payment))


@router.delete(
    "/{payment_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payment(
    ledger: Ledger,
    payment_id: Annotated[UUID, Path()],
) -> MessageResponse:
    """Delete a payment, releasing what it still owed."""
    await ledger.delete_payment(payment_id)
    return MessageResponse(message="Payment deleted successfully")
