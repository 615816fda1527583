from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.routes import opex as opex_routes
from app.api.routes.opex import SupabaseOpexDAO
from app.main import app


class FakeOpexDAO(SupabaseOpexDAO):
    def __init__(self):
        super().__init__("test-token")
        self.rows = {}

    async def list_items(self, business_id: UUID):
        return [row for row in self.rows.values() if row["business_id"] == str(business_id)]

    async def create_item(self, record):
        row = {"id": str(uuid4()), **record}
        self.rows[row["id"]] = row
        return row

    async def update_item(self, opex_id: UUID, changes):
        row = self.rows.get(str(opex_id))
        if row is None:
            return None
        row.update(changes)
        return row

    async def delete_item(self, opex_id: UUID):
        return self.rows.pop(str(opex_id), None) is not None


@pytest.fixture(name="dao")
def dao_fixture():
    return FakeOpexDAO()


@pytest.fixture(name="api_client")
def client_fixture(dao: FakeOpexDAO):
    async def override_dao():
        return dao

    app.dependency_overrides[opex_routes.get_opex_dao] = override_dao
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_create_then_summarize_with_per_unit_cost(api_client: TestClient) -> None:
    business_id = str(uuid4())
    for payload in (
        {"name": "Sewa", "category": "rent", "amount": 6_000_000, "frequency": "yearly"},
        {"name": "Listrik", "category": "utilities", "amount": 10_000, "frequency": "daily"},
        {"name": "Gaji", "category": "salary", "amount": 500_000, "frequency": "weekly"},
    ):
        response = api_client.post("/api/opex", json={"business_id": business_id, **payload})
        assert response.status_code == 201

    response = api_client.get("/api/opex", params={"business_id": business_id, "monthly_sales": 300})

    assert response.status_code == 200
    body = response.json()
    assert body["total_monthly"] == pytest.approx(500_000 + 300_000 + 2_000_000)
    assert body["by_category"]["utilities"] == pytest.approx(300_000)
    assert body["opex_per_unit"] == pytest.approx(2_800_000 / 300)
    assert len(body["items"]) == 3


def test_summary_without_sales_has_no_per_unit_cost(api_client: TestClient) -> None:
    response = api_client.get("/api/opex", params={"business_id": str(uuid4()), "monthly_sales": 0})
    assert response.json()["opex_per_unit"] == 0

    response = api_client.get("/api/opex", params={"business_id": str(uuid4())})
    assert response.json() == {"total_monthly": 0.0, "by_category": {}, "items": [], "opex_per_unit": None}


def test_create_rejects_unknown_frequency(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/opex",
        json={"business_id": str(uuid4()), "name": "Kas", "amount": 1, "frequency": "hourly"},
    )

    assert response.status_code == 422


def test_update_and_delete(api_client: TestClient, dao: FakeOpexDAO) -> None:
    created = api_client.post(
        "/api/opex", json={"business_id": str(uuid4()), "name": "Internet", "amount": 400_000}
    ).json()["opex"]

    assert api_client.patch(f"/api/opex/{created['id']}", json={}).status_code == 400
    updated = api_client.patch(f"/api/opex/{created['id']}", json={"is_active": False})
    assert updated.json()["opex"]["is_active"] is False

    assert api_client.patch(f"/api/opex/{uuid4()}", json={"amount": 1}).status_code == 404
    assert api_client.delete(f"/api/opex/{created['id']}").json()["status"] == "deleted"
    assert api_client.delete(f"/api/opex/{created['id']}").status_code == 404
    assert dao.rows == {}


def test_catalog_lists_frequencies() -> None:
    with TestClient(app) as client:
        body = client.get("/api/opex/catalog").json()

    assert [entry["value"] for entry in body["frequencies"]] == ["daily", "weekly", "monthly", "yearly"]
    assert any(entry["value"] == "rent" for entry in body["categories"])
