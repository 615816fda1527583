"""Onboarding wizard endpoints: snapshot persistence and completion."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from app.schemas import OnboardingCompletePayload, OnboardingStatePayload
from app.security.dependencies import get_access_token, get_current_user_id
from app.services.onboarding_service import (
    OnboardingValidationError,
    SupabaseOnboardingDAO,
    complete_onboarding,
)

router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])
logger = logging.getLogger(__name__)


async def get_onboarding_dao(
    user_id: str = Depends(get_current_user_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseOnboardingDAO:
    return SupabaseOnboardingDAO(user_id, access_token)


@router.get("/state")
async def read_onboarding_state(
    dao: SupabaseOnboardingDAO = Depends(get_onboarding_dao),
) -> Dict[str, Any]:
    return {"data": await dao.fetch_state()}


@router.post("/state")
async def save_onboarding_state(
    payload: OnboardingStatePayload,
    dao: SupabaseOnboardingDAO = Depends(get_onboarding_dao),
) -> Dict[str, bool]:
    await dao.save_state(payload.state.model_dump())
    return {"success": True}


@router.post("/complete", status_code=201)
async def complete_onboarding_endpoint(
    payload: OnboardingCompletePayload,
    dao: SupabaseOnboardingDAO = Depends(get_onboarding_dao),
) -> Dict[str, Any]:
    try:
        result = await complete_onboarding(dao, payload)
    except OnboardingValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        logger.error("Onboarding completion failed for %s: %s", dao.user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to complete onboarding.") from exc

    return {
        "success": True,
        "business": result.business,
        "menu": result.menu,
        "ingredients_created": result.ingredients_created,
    }
