"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from apartment_ledger.api.dependencies import DbSession
from apartment_ledger.models import Household, Payment

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response.

    ``database`` is healthy only when the ledger tables can be read; the
    row counts are reported alongside.
    """

    status: str
    timestamp: datetime
    database: str
    households: int | None = None
    payments: int | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Check that the ledger tables are reachable."""
    households = payments = None
    try:
        households = await db.scalar(select(func.count()).select_from(Household))
        payments = await db.scalar(select(func.count()).select_from(Payment))
    except SQLAlchemyError:
        logger.warning("Ledger tables are not readable", exc_info=True)

    healthy = households is not None and payments is not None
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        database="healthy" if healthy else "unhealthy",
        households=households,
        payments=payments,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
