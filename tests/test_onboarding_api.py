import base64
import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.api.routes import onboarding as onboarding_routes
from app.main import app
from app.services.auth_utils import user_id_from_token
from app.services.onboarding_service import SupabaseOnboardingDAO


class FakeOnboardingDAO(SupabaseOnboardingDAO):
    def __init__(self, user_id: str = "user-1"):
        super().__init__(user_id, "test-token")
        self.state: Optional[Dict[str, Any]] = None
        self.businesses: List[Dict[str, Any]] = []
        self.ingredients: List[Dict[str, Any]] = []
        self.inventory: List[Dict[str, Any]] = []
        self.menus: List[Dict[str, Any]] = []
        self.links: List[Dict[str, Any]] = []
        self.failing_ingredients = set()
        self.inventory_fails = False
        self.menu_without_id = False

    async def fetch_state(self):
        return self.state

    async def save_state(self, state):
        self.state = state

    async def insert_business(self, record):
        row = {"id": "biz-1", **record}
        self.businesses.append(row)
        return row

    async def insert_ingredient(self, record):
        if record["name"] in self.failing_ingredients:
            raise HTTPException(status_code=502, detail="Error while talking to Supabase.")
        row = {"id": f"ing-{len(self.ingredients) + 1}", **record}
        self.ingredients.append(row)
        return row

    async def insert_inventory(self, record):
        if self.inventory_fails:
            raise HTTPException(status_code=502, detail="Error while talking to Supabase.")
        self.inventory.append(record)

    async def insert_menu(self, record):
        if self.menu_without_id:
            return {}
        row = {"id": "menu-1", **record}
        self.menus.append(row)
        return row

    async def insert_menu_ingredients(self, records):
        self.links.extend(records)


@pytest.fixture(name="dao")
def dao_fixture():
    return FakeOnboardingDAO()


@pytest.fixture(name="api_client")
def client_fixture(dao: FakeOnboardingDAO):
    async def override_dao():
        return dao

    app.dependency_overrides[onboarding_routes.get_onboarding_dao] = override_dao
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _complete_payload(**overrides):
    payload = {
        "businessName": "Kopi Senja",
        "businessType": "beverage",
        "city": "bandung",
        "openDays": [1, 2, 3, 4, 5],
        "menuData": {
            "name": "Es Kopi Susu",
            "estimatedCogs": 8000,
            "suggestedPrice": 18000,
            "ingredients": [
                {"name": "Espresso", "usageQuantity": 18, "usageUnit": "gram", "buyingUnit": "kg", "buyingPrice": 250000},
                {"name": "Susu", "usageQuantity": 150, "usageUnit": "ml"},
            ],
        },
        "opexData": [{"id": "o1", "name": "Sewa", "amount": 3000000, "frequency": "monthly"}],
    }
    payload.update(overrides)
    return payload


def test_state_round_trip(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    assert api_client.get("/api/onboarding/state").json() == {"data": None}

    snapshot = {
        "mode": "new",
        "step": 3,
        "maxReachedStep": 3,
        "formValues": {"businessName": "Kopi Senja", "opexData": []},
        "updatedAt": "2025-03-01T08:00:00.000Z",
    }
    response = api_client.post("/api/onboarding/state", json={"state": snapshot})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert dao.state == snapshot
    assert api_client.get("/api/onboarding/state").json() == {"data": snapshot}


def test_state_rejects_invalid_mode(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/onboarding/state",
        json={"state": {"mode": "bogus", "step": 1, "maxReachedStep": 1, "formValues": {}}},
    )

    assert response.status_code == 422


def test_complete_creates_entities_and_purges_snapshot(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    dao.state = {"mode": "new", "step": 6}

    response = api_client.post("/api/onboarding/complete", json=_complete_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["ingredients_created"] == 2
    assert body["menu"]["selling_price"] == 18000
    business = dao.businesses[0]
    assert business["user_id"] == "user-1"
    assert business["metadata"]["openDays"] == [1, 2, 3, 4, 5]
    assert business["metadata"]["opexData"][0]["name"] == "Sewa"
    assert dao.ingredients[0]["market_unit"] == "kg"
    assert dao.ingredients[1]["market_unit"] == "ml"
    assert all(row["current_stock"] == 0 for row in dao.inventory)
    assert [link["ingredient_id"] for link in dao.links] == ["ing-1", "ing-2"]
    assert dao.state is None


def test_complete_skips_ingredients_that_fail(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    dao.failing_ingredients.add("Espresso")

    response = api_client.post("/api/onboarding/complete", json=_complete_payload())

    assert response.status_code == 201
    assert response.json()["ingredients_created"] == 1
    assert [link["ingredient_id"] for link in dao.links] == ["ing-1"]
    assert len(dao.inventory) == 1


def test_complete_requires_business_and_menu_names(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    missing_type = api_client.post("/api/onboarding/complete", json=_complete_payload(businessType=None))
    missing_menu = api_client.post("/api/onboarding/complete", json=_complete_payload(menuData={"ingredients": []}))

    assert missing_type.status_code == 400
    assert missing_menu.status_code == 400
    assert missing_menu.json()["detail"] == "Menu name is required."
    assert dao.businesses == []


def test_state_requires_bearer_token() -> None:
    with TestClient(app) as client:
        response = client.get("/api/onboarding/state")

    assert response.status_code == 401


def _token(claims: Dict[str, Any]) -> str:
    segment = base64.urlsafe_b64encode(json.dumps(claims).encode("utf-8")).decode("ascii").rstrip("=")
    return f"header.{segment}.signature"


def test_user_id_is_read_from_sub_claim() -> None:
    assert user_id_from_token(_token({"sub": "3f2a", "role": "authenticated"})) == "3f2a"

    with pytest.raises(HTTPException) as excinfo:
        user_id_from_token(_token({"role": "anon"}))
    assert excinfo.value.status_code == 401

    with pytest.raises(HTTPException):
        user_id_from_token("not-a-jwt")


def test_complete_continues_when_inventory_rows_fail(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    dao.state = {"mode": "new", "step": 6}
    dao.inventory_fails = True

    response = api_client.post("/api/onboarding/complete", json=_complete_payload())

    assert response.status_code == 201
    assert response.json()["ingredients_created"] == 2
    assert dao.inventory == []
    assert [link["ingredient_id"] for link in dao.links] == ["ing-1", "ing-2"]
    assert dao.state is None


def test_complete_fails_when_menu_has_no_identifier(api_client: TestClient, dao: FakeOnboardingDAO) -> None:
    dao.state = {"mode": "new", "step": 6}
    dao.menu_without_id = True

    response = api_client.post("/api/onboarding/complete", json=_complete_payload())

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to complete onboarding."
    assert dao.links == []
    assert dao.state == {"mode": "new", "step": 6}
