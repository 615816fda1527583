"""Write-behind persistence of the onboarding wizard state.

Each qualifying change of the wizard is serialized into a snapshot, written
synchronously to a user-scoped local cache entry and, after a quiet period,
sent to the remote store. Bursts of changes coalesce into a single remote
write carrying the latest snapshot.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Set

from app.client.local_cache import LocalCache

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "EFENBI_ONBOARDING_STATE"
# Written by earlier releases without a user suffix, so it could leak between accounts.
LEGACY_STATE_KEY = STATE_KEY_PREFIX
DEFAULT_DEBOUNCE_SECONDS = 1.0

OnboardingMode = Literal["selection", "new", "existing"]
SaveState = Callable[[Dict[str, Any]], Awaitable[Any]]


def state_key(user_id: str) -> str:
    """Return the local cache key holding ``user_id``'s snapshot."""
    return f"{STATE_KEY_PREFIX}_{user_id}"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class OnboardingPersistenceController:
    """Replicate live wizard values to a local cache and a debounced remote store.

    The controller never owns or transforms the form values; it only copies
    them. ``on_change`` must run on the event loop that will execute the remote
    write, unless ``loop`` is given explicitly.
    """

    def __init__(
        self,
        cache: LocalCache,
        save_state: SaveState,
        *,
        user_id: Optional[str],
        enabled: bool = True,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Callable[[], str] = utc_timestamp,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.cache = cache
        self._user_id = user_id
        self._enabled = enabled
        self.debounce_seconds = debounce_seconds
        self._save_state = save_state
        self._clock = clock
        self._loop = loop
        self._activated = False
        self._last_saved = ""
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def has_pending_write(self) -> bool:
        return self._timer is not None

    def set_enabled(self, enabled: bool) -> None:
        """Toggle persistence. Turning it off drops a write that has not fired yet."""

        if enabled == self._enabled:
            return
        self._enabled = enabled
        if not enabled:
            self._cancel_timer()

    def set_user_id(self, user_id: Optional[str]) -> None:
        """Switch the account whose snapshot is persisted.

        A pending write belongs to the previous account and is dropped. The
        next change is written under the new user's key even if its content
        matches the last snapshot.
        """

        if user_id == self._user_id:
            return
        self._cancel_timer()
        self._user_id = user_id
        self._last_saved = ""

    def activate(self) -> None:
        """Drop the legacy unscoped cache entry; only the first call does anything."""

        if self._activated:
            return
        self._activated = True
        if self.cache.get_item(LEGACY_STATE_KEY) is not None:
            self.cache.remove_item(LEGACY_STATE_KEY)
            logger.info("Removed legacy onboarding cache entry")

    def on_change(
        self,
        mode: OnboardingMode,
        step: int,
        max_reached_step: int,
        form_values: Any,
    ) -> bool:
        """Persist the wizard state; return True when a write was issued.

        Raises ``TypeError``/``ValueError`` when ``form_values`` cannot be
        serialized to JSON.
        """

        if not self._enabled:
            return False
        if mode == "selection" and step == 1:
            return False
        if not self._user_id:
            return False

        snapshot = {
            "mode": mode,
            "step": step,
            "maxReachedStep": max_reached_step,
            "formValues": form_values,
            "updatedAt": self._clock(),
        }
        serialized = json.dumps(snapshot)
        if serialized == self._last_saved:
            return False
        self._last_saved = serialized

        self.cache.set_item(state_key(self._user_id), serialized)
        # Detached copy: later mutations of the live form tree must not leak in.
        self._schedule_remote_write(json.loads(serialized))
        return True

    def close(self) -> None:
        """Cancel the pending remote write, if any. In-flight writes are left alone."""

        self._cancel_timer()

    def _schedule_remote_write(self, snapshot: Dict[str, Any]) -> None:
        self._cancel_timer()
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._flush, loop, self._user_id, snapshot)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _flush(self, loop: asyncio.AbstractEventLoop, user_id: str, snapshot: Dict[str, Any]) -> None:
        self._timer = None
        task = loop.create_task(self._save_state(snapshot))
        self._in_flight.add(task)
        task.add_done_callback(functools.partial(self._on_remote_write_done, user_id))

    def _on_remote_write_done(self, user_id: str, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Remote onboarding state save failed",
                extra={"user_id": user_id, "error": str(exc)},
            )


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "LEGACY_STATE_KEY",
    "OnboardingPersistenceController",
    "STATE_KEY_PREFIX",
    "state_key",
    "utc_timestamp",
]
