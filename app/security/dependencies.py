"""FastAPI dependencies resolving the authenticated Supabase user."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from app.services.auth_utils import user_id_from_token
from app.services.postgrest_client import extract_bearer_token


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


async def get_current_user_id(access_token: str = Depends(get_access_token)) -> str:
    return user_id_from_token(access_token)


__all__ = ["get_access_token", "get_current_user_id"]
