"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, TypeVar

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)
T = TypeVar("T")

_CODE_STATUS: Dict[str, int] = {
    "23505": 409,  # unique_violation
    "23503": 409,  # foreign_key_violation
    "23502": 400,  # not_null_violation
    "23514": 400,  # check_violation
    "42501": 403,  # insufficient_privilege, RLS refused the row
    "PGRST116": 404,
}
_STATUS_DETAILS: Dict[int, str] = {
    400: "Invalid data for Supabase.",
    401: "Supabase authentication required.",
    403: "Access to the requested resource was denied.",
    404: "Resource not found.",
    409: "Record conflicts with existing data.",
}


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the Bearer token from an Authorization header."""

    if not header_value:
        raise HTTPException(status_code=401, detail="Authentication required.")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Bearer token.")
    token = parts[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing Bearer token.")
    return token


def create_postgrest_client(access_token: str, *, prefer: Optional[str] = None) -> SyncPostgrestClient:
    """PostgREST client acting as the token's user, so RLS applies to every call."""

    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    headers: Dict[str, str] = {
        "apikey": SUPABASE_ANON_KEY,
        "Accept": "application/json",
    }
    if prefer:
        headers["Prefer"] = prefer

    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def raise_postgrest_error(exc: PostgrestAPIError, *, context: str) -> None:
    """Log a PostgREST failure and re-raise it as the matching HTTP error."""

    status_code = postgrest_status(exc)
    logger.error("%s failed (%s, code=%s): %s", context, status_code, exc.code, exc.message)
    if status_code not in _STATUS_DETAILS:
        raise HTTPException(status_code=502, detail="Error while talking to Supabase.") from exc
    raise HTTPException(status_code=status_code, detail=_STATUS_DETAILS[status_code]) from exc


async def run_postgrest(operation: Callable[[], T], *, context: str) -> T:
    """Run a blocking PostgREST call in a worker thread and map its failures."""

    start = time.monotonic()
    try:
        result = await asyncio.to_thread(operation)
    except PostgrestAPIError as exc:
        raise_postgrest_error(exc, context=context)
        raise  # pragma: no cover - raise_postgrest_error always raises
    except HttpxError as exc:
        logger.error("%s unreachable: %s", context, exc)
        raise HTTPException(status_code=503, detail="Supabase is unreachable.") from exc
    logger.debug(
        "Supabase call succeeded",
        extra={"label": context, "duration_ms": round((time.monotonic() - start) * 1000, 2)},
    )
    return result


def postgrest_status(exc: PostgrestAPIError) -> int:
    """HTTP status for a PostgREST error, from its SQLSTATE or ``PGRST`` code."""

    code = str(exc.code or "")
    if code in _CODE_STATUS:
        return _CODE_STATUS[code]
    if code.startswith("PGRST3"):
        return 401
    if code.startswith("22"):
        return 400
    if code.isdigit() and len(code) == 3:
        return int(code)
    return 502


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "postgrest_status",
    "raise_postgrest_error",
    "run_postgrest",
]
