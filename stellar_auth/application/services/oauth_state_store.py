from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from threading import Event, Lock, Thread
from typing import Callable

from stellar_auth.application.use_cases.auth_common import utcnow
from stellar_auth.domain.entities.oauth_state import OAuthState
from stellar_auth.domain.exceptions import StateNotFoundOrExpiredError


logger = logging.getLogger(__name__)

STATE_BYTES = 32


class OAuthStateStore:
    """Process-local CSRF state for the OAuth authorization-code flow.

    One instance is built per process and passed to the OAuth use cases.
    Multi-instance deployments need sticky sessions or a shared replacement.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
    ):
        self._ttl = ttl
        self._clock = clock
        self._states: dict[str, OAuthState] = {}
        self._lock = Lock()
        self._stop = Event()
        self._sweeper: Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def issue(self, *, redirect_to: str | None = None) -> OAuthState:
        now = self._clock()
        state = OAuthState(
            value=secrets.token_hex(STATE_BYTES),
            created_at=now,
            expires_at=now + self._ttl,
            redirect_to=redirect_to,
        )
        with self._lock:
            self._states[state.value] = state
        return state

    def consume(self, value: str) -> OAuthState:
        with self._lock:
            state = self._states.pop(value, None) if value else None
        if state is None or self._clock() > state.expires_at:
            raise StateNotFoundOrExpiredError("Invalid or expired state parameter.")
        return state

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [value for value, state in self._states.items() if now > state.expires_at]
            for value in expired:
                del self._states[value]
        if expired:
            logger.debug("oauth_state_store: swept expired=%s", len(expired))
        return len(expired)

    def start_sweeper(self, *, interval_seconds: float) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = Thread(
            target=self._run_sweeper,
            args=(interval_seconds,),
            name="oauth-state-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _run_sweeper(self, interval_seconds: float) -> None:
        while not self._stop.wait(interval_seconds):
            self.sweep()
