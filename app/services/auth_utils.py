"""Helpers for working with Supabase access tokens."""

from __future__ import annotations

import base64
import json
from typing import Any, Dict

from fastapi import HTTPException


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload for a Supabase access token."""

    if not access_token:
        raise HTTPException(status_code=401, detail="Authentication required.")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        return json.loads(decoded.decode("utf-8"))
    except (IndexError, ValueError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=401, detail="Invalid authentication token.") from exc


def user_id_from_token(access_token: str) -> str:
    """Return the Supabase user id (``sub`` claim) carried by the token."""

    claims = decode_access_token(access_token)
    if not isinstance(claims, dict):
        raise HTTPException(status_code=401, detail="Invalid authentication token.")
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid Supabase user.")
    return str(user_id)


__all__ = ["decode_access_token", "user_id_from_token"]
