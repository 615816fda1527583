"""AI-backed helpers used by the onboarding wizard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from app.schemas import (
    EquipmentSuggestionRequest,
    EquipmentSuggestionResponse,
    OpexSuggestionRequest,
    OpexSuggestionResponse,
    PriceSuggestionRequest,
    PriceSuggestionResponse,
)
from app.security.dependencies import get_access_token
from app.security.guards import rate_limit_request
from app.services.suggestion_service import (
    SuggestionError,
    suggest_equipment,
    suggest_opex,
    suggest_price,
)

router = APIRouter(prefix="/api/ai", tags=["ai"])

SUGGESTION_RATE_LIMIT = 10
SUGGESTION_WINDOW_SECONDS = 60


@router.post("/suggest-opex", response_model=OpexSuggestionResponse)
async def suggest_opex_endpoint(
    payload: OpexSuggestionRequest,
    request: Request,
    _access_token: str = Depends(get_access_token),
) -> OpexSuggestionResponse:
    rate_limit_request(
        request, scope="suggest-opex", limit=SUGGESTION_RATE_LIMIT, window_seconds=SUGGESTION_WINDOW_SECONDS
    )
    try:
        return await suggest_opex(payload)
    except SuggestionError as exc:
        raise HTTPException(status_code=502, detail="Failed to suggest OPEX.") from exc


@router.post("/suggest-equipment", response_model=EquipmentSuggestionResponse)
async def suggest_equipment_endpoint(
    payload: EquipmentSuggestionRequest,
    request: Request,
    _access_token: str = Depends(get_access_token),
) -> EquipmentSuggestionResponse:
    rate_limit_request(
        request, scope="suggest-equipment", limit=SUGGESTION_RATE_LIMIT, window_seconds=SUGGESTION_WINDOW_SECONDS
    )
    try:
        return await suggest_equipment(payload)
    except SuggestionError as exc:
        raise HTTPException(status_code=502, detail="Failed to suggest equipment.") from exc


@router.post("/suggest-price", response_model=PriceSuggestionResponse)
async def suggest_price_endpoint(
    payload: PriceSuggestionRequest,
    request: Request,
    _access_token: str = Depends(get_access_token),
) -> PriceSuggestionResponse:
    rate_limit_request(
        request, scope="suggest-price", limit=SUGGESTION_RATE_LIMIT, window_seconds=SUGGESTION_WINDOW_SECONDS
    )
    try:
        return await suggest_price(payload)
    except SuggestionError as exc:
        raise HTTPException(status_code=502, detail="Failed to suggest a price.") from exc
