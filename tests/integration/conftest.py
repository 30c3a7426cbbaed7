"""API test fixtures backed by a per-test SQLite database."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from apartment_ledger.api.app import create_app
from apartment_ledger.api.dependencies import (
    get_ledger_service,
    get_overdue_sweeper,
    get_session_factory,
)


@pytest.fixture
def app(session_factory, ledger, sweeper) -> FastAPI:
    """Application wired to the test database and the fixed clock."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ledger_service] = lambda: ledger
    app.dependency_overrides[get_overdue_sweeper] = lambda: sweeper
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
