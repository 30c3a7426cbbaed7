"""FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apartment_ledger.api.routes import health_router, payments_router
from apartment_ledger.config import configure_logging, get_settings
from apartment_ledger.database import dispose_db, init_db
from apartment_ledger.services.errors import (
    ConflictRetryError,
    IllegalTransitionError,
    InternalLedgerError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
)
from apartment_ledger.services.overdue_sweeper import OverdueSweeper

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[LedgerError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    IllegalTransitionError: status.HTTP_400_BAD_REQUEST,
    ConflictRetryError: status.HTTP_409_CONFLICT,
    InternalLedgerError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: LedgerError) -> int:
    """Map a ledger error to its HTTP status code."""
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level)
    _, session_factory = init_db()

    stop_event = asyncio.Event()
    sweeper_task: asyncio.Task[None] | None = None
    if settings.sweep_interval_seconds > 0:
        sweeper = OverdueSweeper(session_factory)
        sweeper_task = asyncio.create_task(
            sweeper.run_periodically(settings.sweep_interval_seconds, stop_event)
        )
        logger.info(
            "Overdue sweeper scheduled every %d second(s)", settings.sweep_interval_seconds
        )

    yield

    stop_event.set()
    if sweeper_task is not None:
        await sweeper_task
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Apartment Ledger API",
        description="Fee payments and household balances",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(
        request: Request, exc: LedgerError
    ) -> JSONResponse:
        """Translate ledger errors into HTTP responses."""
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed request bodies as invalid arguments."""
        errors = exc.errors()
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in errors
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": detail, "code": InvalidArgumentError.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payments_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
