"""OPEX, equipment and ingredient price suggestions produced by OpenAI."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List

from openai import APIError
from pydantic import ValidationError

from app.config.openai_client import OPENAI_MODEL, get_openai_client
from app.schemas import (
    EquipmentSuggestionItem,
    EquipmentSuggestionRequest,
    EquipmentSuggestionResponse,
    OpexSuggestionItem,
    OpexSuggestionRequest,
    OpexSuggestionResponse,
    PriceSuggestionRequest,
    PriceSuggestionResponse,
)
from app.services.opex import calculate_monthly_opex

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a financial consultant for small food & beverage businesses in Indonesia. "
    "Always answer with a single JSON object and nothing else."
)


class SuggestionError(RuntimeError):
    """Raised when no usable suggestion could be obtained from the model."""


def build_opex_prompt(request: OpexSuggestionRequest) -> str:
    """Describe the business and the expected JSON shape for the model."""

    return f"""
List the estimated recurring operating expenses (OPEX) for this business:
- Business name: {request.business_name or 'F&B business'}
- Business type: {request.business_type or 'cafe'}
- Description: {request.description or 'No description'}
- Location: {request.location or 'Indonesia'}
- Operating model: {request.operating_model or 'cafe'}
- Team size: {request.team_size or 'solo'}
- Sales target: {request.target_daily_sales or 30} transactions/day

Reply in this JSON format:
{{
  "typical_opex_categories": [
    {{"name": "<category name>", "estimated_amount": <amount in Rupiah>, "frequency": "monthly" | "weekly" | "daily" | "yearly"}}
  ]
}}

Rules:
- Give 6 to 10 recurring cost categories (electricity, water, salaries, non-food consumables, internet, rent, ...).
- Estimates must be realistic for the size and sales target of the business.
- Do not include COGS (food and beverage ingredients).
""".strip()


def parse_opex_suggestion(raw: str) -> OpexSuggestionResponse:
    """Validate the model's JSON reply; entries that cannot be used are dropped."""

    data = _load_object(raw)
    raw_items = data.get("typical_opex_categories") or []
    if not isinstance(raw_items, list):
        raise SuggestionError("Model reply has no category list.")

    items: List[OpexSuggestionItem] = []
    for entry in raw_items:
        try:
            items.append(OpexSuggestionItem.model_validate(entry))
        except ValidationError as exc:
            logger.debug("Dropping invalid OPEX suggestion %r: %s", entry, exc)
    total = calculate_monthly_opex(
        {"amount": item.estimated_amount, "frequency": item.frequency} for item in items
    )
    return OpexSuggestionResponse(typical_opex_categories=items, total_monthly=total)


async def suggest_opex(request: OpexSuggestionRequest) -> OpexSuggestionResponse:
    """Ask the model for typical OPEX lines of the described business."""

    raw = await _ask_model(build_opex_prompt(request), topic="OPEX")
    return parse_opex_suggestion(raw)


def build_equipment_prompt(request: EquipmentSuggestionRequest) -> str:
    return f"""
List the equipment needed to start this business:
- Business name: {request.business_name or 'F&B business'}
- Business type: {request.business_type or 'cafe'}
- Description: {request.description or 'No description'}
- Location: {request.location or 'Indonesia'}
- Operating model: {request.operating_model or 'cafe'}
- Team size: {request.team_size or 'solo'}
- Sales target: {request.target_daily_sales or 30} transactions/day

Reply in this JSON format:
{{
  "equipment": [
    {{"name": "<equipment name>", "quantity": <count>, "estimated_price": <unit price in Rupiah>, "priority": "essential" | "recommended" | "optional"}}
  ],
  "total_estimated_cost": <sum of quantity x estimated_price>
}}

Rules:
- Give 8 to 12 items, 5 or 6 of them essential.
- Prices must be realistic for the Indonesian market in 2025.
- Size the capacity of each item to the sales target.
""".strip()


def parse_equipment_suggestion(raw: str) -> EquipmentSuggestionResponse:
    """Validate the equipment list; the total is recomputed from the kept items."""

    data = _load_object(raw)
    raw_items = data.get("equipment") or []
    if not isinstance(raw_items, list):
        raise SuggestionError("Model reply has no equipment list.")

    items: List[EquipmentSuggestionItem] = []
    for entry in raw_items:
        try:
            items.append(EquipmentSuggestionItem.model_validate(entry))
        except ValidationError as exc:
            logger.debug("Dropping invalid equipment suggestion %r: %s", entry, exc)
    total = sum(item.quantity * item.estimated_price for item in items)
    return EquipmentSuggestionResponse(equipment=items, total_estimated_cost=total)


async def suggest_equipment(request: EquipmentSuggestionRequest) -> EquipmentSuggestionResponse:
    raw = await _ask_model(build_equipment_prompt(request), topic="equipment")
    return parse_equipment_suggestion(raw)


def build_price_prompt(request: PriceSuggestionRequest) -> str:
    current = f"Rp {request.current_price:,.0f}" if request.current_price else "unknown"
    return f"""
Estimate the current market price of this ingredient:
- Ingredient: {request.ingredient_name}
- Category: {request.category or 'other'}
- Unit: per {request.market_unit}
- Price the user entered: {current}
- Location: {request.location or 'Indonesia'}

Reply in this JSON format:
{{
  "suggested_price": <price in Rupiah per unit>,
  "confidence": "low" | "medium" | "high",
  "reasoning": "<one or two sentences>",
  "market_range": {{"min": <lowest usual price>, "max": <highest usual price>}}
}}

Rules:
- Use typical traditional market and supplier prices in Indonesia in 2025.
- Use low confidence when the ingredient is ambiguous or regional.
""".strip()


def parse_price_suggestion(raw: str) -> PriceSuggestionResponse:
    """Validate the price reply. A malformed ``market_range`` is dropped, a missing price is an error."""

    data = _load_object(raw)
    try:
        return PriceSuggestionResponse.model_validate(data)
    except ValidationError as exc:
        if any(error["loc"][:1] != ("market_range",) for error in exc.errors()):
            raise SuggestionError("Model reply has no usable price.") from exc
        logger.debug("Dropping invalid market range %r: %s", data.get("market_range"), exc)
    return PriceSuggestionResponse.model_validate({**data, "market_range": None})


async def suggest_price(request: PriceSuggestionRequest) -> PriceSuggestionResponse:
    raw = await _ask_model(build_price_prompt(request), topic="price")
    return parse_price_suggestion(raw)


async def _ask_model(prompt: str, *, topic: str) -> str:
    try:
        raw = await asyncio.to_thread(_request_completion, prompt)
    except APIError as exc:  # pragma: no cover - depends on network
        logger.error("OpenAI %s suggestion failed: %s", topic, exc, exc_info=True)
        raise SuggestionError("Suggestion service unavailable.") from exc
    if not raw:
        raise SuggestionError("Empty reply from the suggestion service.")
    return raw


def _load_object(raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise SuggestionError("Model reply is not valid JSON.") from exc
    if not isinstance(data, dict):
        raise SuggestionError("Model reply is not a JSON object.")
    return data


def _request_completion(prompt: str) -> str:
    client = get_openai_client()
    messages: List[Dict[str, Any]] = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
    completion = client.chat.completions.create(
        model=OPENAI_MODEL,
        messages=messages,
        response_format={"type": "json_object"},
    )
    if completion.choices:
        return completion.choices[0].message.content or ""
    return ""


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


__all__ = [
    "SuggestionError",
    "build_equipment_prompt",
    "build_opex_prompt",
    "build_price_prompt",
    "parse_equipment_suggestion",
    "parse_opex_suggestion",
    "parse_price_suggestion",
    "suggest_equipment",
    "suggest_opex",
    "suggest_price",
]
