"""Onboarding persistence and completion on top of Supabase."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from app.schemas import OnboardingCompletePayload
from app.services.postgrest_client import create_postgrest_client, run_postgrest

logger = logging.getLogger(__name__)

DEFAULT_OPEN_DAYS = [1, 2, 3, 4, 5, 6, 7]
DEFAULT_TARGET_MARGIN = 0.6
DEFAULT_CURRENCY = "IDR"
DEFAULT_MENU_CATEGORY = "minuman"


class OnboardingValidationError(ValueError):
    """Raised when the completed wizard is missing mandatory fields."""


@dataclass(frozen=True)
class OnboardingResult:
    business: Dict[str, Any]
    menu: Dict[str, Any]
    ingredients_created: int


class SupabaseOnboardingDAO:
    """DAO scoped to a single Supabase user through their access token."""

    def __init__(self, user_id: str, access_token: str):
        self.user_id = user_id
        self.access_token = access_token

    def _client(self, *, prefer: Optional[str] = None):
        return create_postgrest_client(self.access_token, prefer=prefer)

    async def fetch_state(self) -> Optional[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("profiles")
                    .select("onboarding_data")
                    .eq("id", self.user_id)
                    .limit(1)
                    .execute()
                )
                return response.data or []

        rows = await run_postgrest(_request, context="onboarding state lookup")
        if not rows:
            return None
        return rows[0].get("onboarding_data")

    async def save_state(self, state: Optional[Dict[str, Any]]) -> None:
        payload = {
            "onboarding_data": state,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        def _request() -> None:
            with self._client(prefer="return=minimal") as client:
                client.table("profiles").update(payload).eq("id", self.user_id).execute()

        await run_postgrest(_request, context="onboarding state update")

    async def clear_state(self) -> None:
        await self.save_state(None)

    async def insert_business(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert_one("businesses", record, context="business insert")

    async def insert_ingredient(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert_one("ingredients", record, context="ingredient insert")

    async def insert_inventory(self, record: Dict[str, Any]) -> None:
        await self._insert_one("inventory", record, context="inventory insert")

    async def insert_menu(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert_one("menus", record, context="menu insert")

    async def insert_menu_ingredients(self, records: List[Dict[str, Any]]) -> None:
        def _request() -> None:
            with self._client(prefer="return=minimal") as client:
                client.table("menu_ingredients").insert(records).execute()

        await run_postgrest(_request, context="menu ingredients insert")

    async def _insert_one(self, table: str, record: Dict[str, Any], *, context: str) -> Dict[str, Any]:
        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                response = client.table(table).insert(record).execute()
                return response.data or []

        rows = await run_postgrest(_request, context=context)
        return rows[0] if rows else {}


async def complete_onboarding(
    dao: SupabaseOnboardingDAO,
    payload: OnboardingCompletePayload,
) -> OnboardingResult:
    """Create the business, its first menu and ingredients, then drop the snapshot."""

    if not payload.businessName or not payload.businessType:
        raise OnboardingValidationError("Business name and type are required.")
    menu_data = payload.menuData
    if not menu_data.name:
        raise OnboardingValidationError("Menu name is required.")

    metadata = {
        "openDays": payload.openDays or list(DEFAULT_OPEN_DAYS),
        "opexData": [entry.model_dump() for entry in payload.opexData],
        "equipmentData": [entry.model_dump() for entry in payload.equipmentData],
    }
    business = await dao.insert_business(
        {
            "user_id": dao.user_id,
            "name": payload.businessName,
            "type": payload.businessType,
            "location": payload.city or None,
            "target_margin": DEFAULT_TARGET_MARGIN,
            "is_planning_mode": True,
            "onboarding_completed": True,
            "currency": DEFAULT_CURRENCY,
            "metadata": metadata,
        }
    )
    business_id = business.get("id")
    if not business_id:
        raise RuntimeError("Business insert returned no identifier.")

    ingredient_ids: Dict[str, Any] = {}
    for ingredient in menu_data.ingredients:
        try:
            row = await dao.insert_ingredient(
                {
                    "business_id": business_id,
                    "name": ingredient.name,
                    "category": "other",
                    "market_unit": ingredient.buyingUnit or ingredient.usageUnit,
                    "market_qty": ingredient.buyingQuantity or 1,
                    "price_per_market_unit": ingredient.buyingPrice or 0,
                    "recipe_unit": ingredient.usageUnit,
                    "conversion_factor": 1,
                    "is_active": True,
                }
            )
        except HTTPException as exc:
            logger.warning("Skipping ingredient %s: %s", ingredient.name, exc.detail)
            continue
        ingredient_id = row.get("id")
        if not ingredient_id:
            continue
        ingredient_ids[ingredient.name] = ingredient_id
        try:
            await dao.insert_inventory(
                {
                    "business_id": business_id,
                    "ingredient_id": ingredient_id,
                    "current_stock": 0,
                    "unit": ingredient.usageUnit,
                    "min_stock": 0,
                }
            )
        except HTTPException as exc:
            logger.warning("Inventory row failed for ingredient %s: %s", ingredient.name, exc.detail)

    menu = await dao.insert_menu(
        {
            "business_id": business_id,
            "name": menu_data.name,
            "category": menu_data.category or DEFAULT_MENU_CATEGORY,
            "description": menu_data.description or None,
            "selling_price": menu_data.suggestedPrice or 0,
            "cogs": menu_data.estimatedCogs or 0,
            "is_active": True,
            "sort_order": 1,
        }
    )
    menu_id = menu.get("id")
    if not menu_id:
        raise RuntimeError("Menu insert returned no identifier.")

    links = [
        {
            "menu_id": menu_id,
            "ingredient_id": ingredient_ids[ingredient.name],
            "quantity": ingredient.usageQuantity,
            "unit": ingredient.usageUnit,
        }
        for ingredient in menu_data.ingredients
        if ingredient.name in ingredient_ids
    ]
    if links:
        try:
            await dao.insert_menu_ingredients(links)
        except HTTPException as exc:
            logger.warning("Menu ingredient links failed for menu %s: %s", menu_id, exc.detail)

    await dao.clear_state()
    logger.info(
        "Onboarding completed",
        extra={"user_id": dao.user_id, "business_id": business_id, "ingredients": len(ingredient_ids)},
    )
    return OnboardingResult(business=business, menu=menu, ingredients_created=len(ingredient_ids))


__all__ = [
    "OnboardingResult",
    "OnboardingValidationError",
    "SupabaseOnboardingDAO",
    "complete_onboarding",
]
