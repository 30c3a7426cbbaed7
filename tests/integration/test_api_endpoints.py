"""API endpoint integration tests.

Tests the FastAPI endpoints for payments and household balances.
"""

from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from apartment_ledger.api.dependencies import get_session_factory
from apartment_ledger.database import create_session_factory
from tests.conftest import TODAY, TOMORROW, YESTERDAY


def payment_body(household, fee_category, **overrides):
    body = {
        "household_id": str(household.household_id),
        "fee_category_id": str(fee_category.fee_category_id),
        "amount": "150.00",
        "due_date": TOMORROW.isoformat(),
    }
    body.update(overrides)
    return body


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "timestamp" in data

    async def test_health_counts_ledger_rows(self, client: AsyncClient, test_data, household, fee_category):
        await test_data.create_household("B-202")
        await client.post("/api/v1/payments", json=payment_body(household, fee_category))

        data = (await client.get("/health")).json()

        assert data["households"] == 2
        assert data["payments"] == 1

    async def test_health_degraded_without_ledger_tables(self, app, client: AsyncClient, tmp_path):
        """A reachable database without the ledger schema is not healthy."""
        empty = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        app.dependency_overrides[get_session_factory] = lambda: create_session_factory(empty)
        try:
            response = await client.get("/health")
        finally:
            await empty.dispose()

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"] == "unhealthy"
        assert data["households"] is None

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPaymentCRUD:
    """Test single payment endpoints."""

    async def test_create_payment(self, client: AsyncClient, test_data, household, fee_category):
        """POST /api/v1/payments should create a payment and charge the household."""
        response = await client.post("/api/v1/payments", json=payment_body(household, fee_category))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert Decimal(data["amount"]) == Decimal("150")
        assert data["payment_date"] is None
        assert await test_data.balance(household.household_id) == Decimal("150")

    async def test_create_collected_payment(self, client: AsyncClient, test_data, household, fee_category):
        response = await client.post(
            "/api/v1/payments",
            json=payment_body(household, fee_category, status="collected", payment_method="online"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "collected"
        assert data["payment_method"] == "online"
        assert data["payment_date"] is not None
        assert await test_data.balance(household.household_id) == 0

    async def test_create_rejects_non_positive_amount(self, client: AsyncClient, household, fee_category):
        response = await client.post(
            "/api/v1/payments", json=payment_body(household, fee_category, amount="0")
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ARGUMENT"

    async def test_create_rejects_malformed_body(self, client: AsyncClient, household, fee_category):
        body = payment_body(household, fee_category)
        del body["due_date"]

        response = await client.post("/api/v1/payments", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ARGUMENT"

    async def test_create_rejects_unknown_method(self, client: AsyncClient, household, fee_category):
        response = await client.post(
            "/api/v1/payments",
            json=payment_body(household, fee_category, status="collected", payment_method="bitcoin"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "ILLEGAL_TRANSITION"

    async def test_create_for_missing_household(self, client: AsyncClient, household, fee_category):
        body = payment_body(household, fee_category, household_id=str(uuid4()))

        response = await client.post("/api/v1/payments", json=body)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_get_payment(self, client: AsyncClient, household, fee_category):
        created = (await client.post("/api/v1/payments", json=payment_body(household, fee_category))).json()

        response = await client.get(f"/api/v1/payments/{created['payment_id']}")

        assert response.status_code == 200
        assert response.json()["payment_id"] == created["payment_id"]

    async def test_payment_includes_household_and_fee_category(self, client: AsyncClient, household, fee_category):
        created = (await client.post("/api/v1/payments", json=payment_body(household, fee_category))).json()

        fetched = (await client.get(f"/api/v1/payments/{created['payment_id']}")).json()
        listed = (await client.get("/api/v1/payments")).json()["items"][0]

        for data in (created, fetched, listed):
            assert data["household"] == {
                "household_id": str(household.household_id),
                "unit": "A-101",
                "owner_name": "Owner A-101",
            }
            assert data["fee_category"] == {
                "fee_category_id": str(fee_category.fee_category_id),
                "name": "Management fee",
            }

    async def test_get_missing_payment(self, client: AsyncClient):
        response = await client.get(f"/api/v1/payments/{uuid4()}")
        assert response.status_code == 404

    async def test_get_shows_derived_status(self, client: AsyncClient, test_data, household, fee_category):
        """A stale pending row is shown as overdue before any sweep."""
        row = await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), YESTERDAY
        )

        response = await client.get(f"/api/v1/payments/{row.payment_id}")

        assert response.json()["status"] == "overdue"

    async def test_collect_and_reverse(self, client: AsyncClient, test_data, household, fee_category):
        created = (await client.post("/api/v1/payments", json=payment_body(household, fee_category))).json()
        url = f"/api/v1/payments/{created['payment_id']}"

        collected = await client.put(url, json={"status": "collected", "payment_method": "card"})
        assert collected.status_code == 200
        assert collected.json()["payment_method"] == "card"
        assert await test_data.balance(household.household_id) == 0

        reversed_ = await client.put(url, json={"status": "pending"})
        assert reversed_.status_code == 200
        assert reversed_.json()["payment_method"] is None
        assert reversed_.json()["payment_date"] is None
        assert await test_data.balance(household.household_id) == Decimal("150")

    async def test_update_missing_payment(self, client: AsyncClient):
        response = await client.put(f"/api/v1/payments/{uuid4()}", json={"status": "collected"})
        assert response.status_code == 404

    async def test_delete_payment(self, client: AsyncClient, test_data, household, fee_category):
        created = (await client.post("/api/v1/payments", json=payment_body(household, fee_category))).json()

        response = await client.delete(f"/api/v1/payments/{created['payment_id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Payment deleted successfully"
        assert await test_data.balance(household.household_id) == 0
        assert await test_data.payment_count() == 0

    async def test_delete_missing_payment(self, client: AsyncClient):
        response = await client.delete(f"/api/v1/payments/{uuid4()}")
        assert response.status_code == 404


class TestPaymentList:
    """Test listing endpoints."""

    async def test_list_with_status_filter(self, client: AsyncClient, test_data, household, fee_category):
        await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), YESTERDAY
        )
        await client.post("/api/v1/payments", json=payment_body(household, fee_category))

        overdue = (await client.get("/api/v1/payments", params={"status": "overdue"})).json()
        everything = (await client.get("/api/v1/payments", params={"status": "all"})).json()

        assert overdue["total"] == 1
        assert overdue["items"][0]["status"] == "overdue"
        assert everything["total"] == 2
        assert everything["items"][0]["due_date"] == TOMORROW.isoformat()

    async def test_list_rejects_unknown_status(self, client: AsyncClient):
        response = await client.get("/api/v1/payments", params={"status": "paid"})
        assert response.status_code == 400


class TestBulkEndpoints:
    """Test generation, overdue sweep and reconciliation endpoints."""

    async def test_generate_monthly(self, client: AsyncClient, test_data, fee_category):
        units = [await test_data.create_household(f"G-{n}") for n in range(3)]

        response = await client.put(
            "/api/v1/payments",
            json={"fee_category_id": str(fee_category.fee_category_id), "month": 6, "year": 2026},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Created 3 payments", "count": 3}
        for unit in units:
            assert await test_data.balance(unit.household_id) == Decimal("50")

    async def test_generate_rejects_invalid_month(self, client: AsyncClient, fee_category):
        response = await client.put(
            "/api/v1/payments",
            json={"fee_category_id": str(fee_category.fee_category_id), "month": 13},
        )
        assert response.status_code == 400

    async def test_generate_for_missing_fee_category(self, client: AsyncClient):
        response = await client.put("/api/v1/payments", json={"fee_category_id": str(uuid4())})
        assert response.status_code == 404

    async def test_update_overdue(self, client: AsyncClient, test_data, household, fee_category):
        stale = await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), YESTERDAY
        )
        due_today = await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), TODAY
        )

        response = await client.post("/api/v1/payments/update-overdue")

        assert response.status_code == 200
        assert response.json()["count"] == 1
        statuses = await test_data.statuses()
        assert statuses[stale.payment_id] == "overdue"
        assert statuses[due_today.payment_id] == "pending"

    async def test_update_overdue_always_sweeps_as_of_today(self, client: AsyncClient, test_data, household, fee_category):
        upcoming = await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), TOMORROW
        )

        response = await client.post(
            "/api/v1/payments/update-overdue", params={"as_of": "2099-01-01"}
        )

        assert response.status_code == 200
        assert response.json()["count"] == 0
        assert (await test_data.statuses())[upcoming.payment_id] == "pending"

    async def test_update_overdue_via_get(self, client: AsyncClient, test_data, household, fee_category):
        await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("60"), YESTERDAY
        )

        first = await client.get("/api/v1/payments/update-overdue")
        second = await client.get("/api/v1/payments/update-overdue")

        assert first.json() == {"message": "Updated 1 payments to overdue", "count": 1}
        assert second.json()["count"] == 0

    async def test_reconciliation(self, client: AsyncClient, test_data, household, fee_category):
        await client.post("/api/v1/payments", json=payment_body(household, fee_category))
        await test_data.insert_payment_row(
            household.household_id, fee_category.fee_category_id, Decimal("25"), TOMORROW
        )

        response = await client.get("/api/v1/payments/reconciliation")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["households_checked"] == 1
        [drift] = data["drifts"]
        assert Decimal(drift["difference"]) == Decimal("-25")
