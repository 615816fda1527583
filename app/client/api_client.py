"""HTTP client for the onboarding endpoints plus local snapshot helpers."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from app.client.local_cache import LocalCache
from app.client.onboarding_persistence import state_key

logger = logging.getLogger(__name__)


class OnboardingApiError(RuntimeError):
    """Raised when the onboarding API rejects a request the caller must see."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OnboardingApiClient:
    """Talks to ``/api/onboarding`` with the user's Supabase access token."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            },
        )

    async def save_state(self, state: Dict[str, Any]) -> bool:
        """Store the snapshot remotely; failures are logged and reported as False."""

        try:
            async with self._client() as client:
                response = await client.post("/api/onboarding/state", json={"state": state})
        except httpx.HTTPError as exc:
            logger.warning("Onboarding state save unreachable: %s", exc)
            return False
        if not response.is_success:
            logger.warning("Onboarding state save failed (%s): %s", response.status_code, response.text)
            return False
        return True

    async def get_state(self) -> Optional[Dict[str, Any]]:
        """Return the last snapshot saved for the current user, if any."""

        try:
            async with self._client() as client:
                response = await client.get("/api/onboarding/state")
        except httpx.HTTPError as exc:
            raise OnboardingApiError("Onboarding service is unreachable.") from exc
        if not response.is_success:
            raise OnboardingApiError(_error_detail(response), response.status_code)
        data = response.json().get("data")
        return data if isinstance(data, dict) else None

    async def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create the business from the finished wizard."""

        try:
            async with self._client() as client:
                response = await client.post("/api/onboarding/complete", json=payload)
        except httpx.HTTPError as exc:
            raise OnboardingApiError("Onboarding service is unreachable.") from exc
        if not response.is_success:
            raise OnboardingApiError(_error_detail(response), response.status_code)
        return response.json()


def load_local_snapshot(cache: LocalCache, user_id: str) -> Optional[Dict[str, Any]]:
    """Read ``user_id``'s cached snapshot; unreadable entries count as missing."""

    if not user_id:
        return None
    raw = cache.get_item(state_key(user_id))
    if not raw:
        return None
    try:
        snapshot = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupted onboarding snapshot for %s", user_id)
        return None
    return snapshot if isinstance(snapshot, dict) else None


def clear_local_snapshot(cache: LocalCache, user_id: str) -> None:
    if user_id:
        cache.remove_item(state_key(user_id))


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error")
        if detail:
            return str(detail)
    return f"Onboarding request failed ({response.status_code})."


__all__ = [
    "OnboardingApiClient",
    "OnboardingApiError",
    "clear_local_snapshot",
    "load_local_snapshot",
]
