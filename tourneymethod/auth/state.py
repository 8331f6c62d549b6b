"""One-time CSRF state tokens for pending osu! logins."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from . import config
from .crypto import generate_state_token, redact, tokens_match
from .errors import CsrfValidationFailed

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingLogin:
    state: str
    created_at: datetime

    def expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at >= ttl


class StateTokenStore:
    """In-process registry of login attempts awaiting their provider callback.

    Entries are removed by ``consume`` whether or not validation succeeds, so
    a state value can be presented at most once. The pop happens under a lock,
    which makes concurrent replays of the same callback URL race for a single
    winner.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = config.LOGIN_STATE_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._pending: Dict[str, PendingLogin] = {}
        self._lock = threading.Lock()

    def issue(self) -> str:
        now = self._clock()
        state = generate_state_token()
        with self._lock:
            self._purge_locked(now)
            self._pending[state] = PendingLogin(state=state, created_at=now)
        LOGGER.debug("Issued login state %s", redact(state))
        return state

    def consume(self, state: Optional[str], session_state: Optional[str]) -> None:
        """Validate and retire ``state``.

        Raises:
            CsrfValidationFailed: unknown, expired or replayed state, or a
                state that does not match the value bound to the browser.
        """
        now = self._clock()
        with self._lock:
            entry = self._pending.pop(state, None) if state else None

        if entry is None:
            raise CsrfValidationFailed("Login state not found - possible replay or forged callback")
        if entry.expired(now, self._ttl):
            raise CsrfValidationFailed("Login state expired")
        if not tokens_match(session_state, state):
            raise CsrfValidationFailed("Login state does not match browser session")

    def discard(self, state: Optional[str]) -> bool:
        if not state:
            return False
        with self._lock:
            return self._pending.pop(state, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: datetime) -> int:
        stale = [key for key, entry in self._pending.items() if entry.expired(now, self._ttl)]
        for key in stale:
            del self._pending[key]
        if stale:
            LOGGER.debug("Purged %d expired login states", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


_STATE_STORE: Optional[StateTokenStore] = None


def get_state_store() -> StateTokenStore:
    global _STATE_STORE
    if _STATE_STORE is None:
        _STATE_STORE = StateTokenStore()
    return _STATE_STORE
