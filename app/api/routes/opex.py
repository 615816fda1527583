"""OPEX endpoints: CRUD over recurring costs and their monthly summary."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.schemas import OpexCreatePayload, OpexSummaryResponse, OpexUpdatePayload
from app.security.dependencies import get_access_token
from app.services.opex import (
    OPEX_CATEGORIES,
    OPEX_FREQUENCIES,
    calculate_opex_per_unit,
    summarize_opex,
)
from app.services.postgrest_client import create_postgrest_client, run_postgrest

router = APIRouter(prefix="/api/opex", tags=["opex"])

OPEX_COLUMNS = "id,business_id,name,category,amount,frequency,is_active,notes,created_at,updated_at"


class SupabaseOpexDAO:
    """DAO over the ``opex`` table, authorised with the caller's token."""

    def __init__(self, access_token: str):
        self.access_token = access_token

    def _client(self, *, prefer: Optional[str] = None):
        return create_postgrest_client(self.access_token, prefer=prefer)

    async def list_items(self, business_id: UUID) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("opex")
                    .select(OPEX_COLUMNS)
                    .eq("business_id", str(business_id))
                    .order("created_at", desc=False)
                    .execute()
                )
                return response.data or []

        return await run_postgrest(_request, context="opex list")

    async def create_item(self, record: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                return client.table("opex").insert(record).execute().data or []

        rows = await run_postgrest(_request, context="opex insert")
        if not rows:
            raise HTTPException(status_code=502, detail="OPEX item was not created.")
        return rows[0]

    async def update_item(self, opex_id: UUID, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                return client.table("opex").update(changes).eq("id", str(opex_id)).execute().data or []

        rows = await run_postgrest(_request, context="opex update")
        return rows[0] if rows else None

    async def delete_item(self, opex_id: UUID) -> bool:
        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                return client.table("opex").delete().eq("id", str(opex_id)).execute().data or []

        rows = await run_postgrest(_request, context="opex delete")
        return bool(rows)


async def get_opex_dao(access_token: str = Depends(get_access_token)) -> SupabaseOpexDAO:
    return SupabaseOpexDAO(access_token)


@router.get("/catalog")
async def opex_catalog() -> Dict[str, Any]:
    return {"categories": OPEX_CATEGORIES, "frequencies": OPEX_FREQUENCIES}


@router.get("", response_model=OpexSummaryResponse)
async def list_opex(
    business_id: UUID = Query(...),
    monthly_sales: Optional[float] = Query(default=None),
    dao: SupabaseOpexDAO = Depends(get_opex_dao),
) -> OpexSummaryResponse:
    rows = await dao.list_items(business_id)
    summary = summarize_opex(rows)
    opex_per_unit = None
    if monthly_sales is not None:
        opex_per_unit = calculate_opex_per_unit(summary.total_monthly, monthly_sales)
    return OpexSummaryResponse(**summary.model_dump(), opex_per_unit=opex_per_unit)


@router.post("", status_code=201)
async def create_opex(
    payload: OpexCreatePayload,
    dao: SupabaseOpexDAO = Depends(get_opex_dao),
) -> Dict[str, Any]:
    record = payload.model_dump()
    record["business_id"] = str(payload.business_id)
    return {"opex": await dao.create_item(record)}


@router.patch("/{opex_id}")
async def update_opex(
    opex_id: UUID,
    payload: OpexUpdatePayload,
    dao: SupabaseOpexDAO = Depends(get_opex_dao),
) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No field to update.")
    row = await dao.update_item(opex_id, changes)
    if row is None:
        raise HTTPException(status_code=404, detail="OPEX item not found.")
    return {"opex": row}


@router.delete("/{opex_id}")
async def delete_opex(
    opex_id: UUID,
    dao: SupabaseOpexDAO = Depends(get_opex_dao),
) -> Dict[str, str]:
    if not await dao.delete_item(opex_id):
        raise HTTPException(status_code=404, detail="OPEX item not found.")
    return {"status": "deleted", "id": str(opex_id)}
