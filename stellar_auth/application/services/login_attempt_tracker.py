from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable

from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.login_attempt_port import LoginAttemptPort
from stellar_auth.application.use_cases.auth_common import utcnow
from stellar_auth.domain.entities.login_attempt import LockoutStatus, LoginAttemptRecord
from stellar_auth.domain.exceptions import DependencyError
from stellar_auth.domain.services.credentials_policy import normalize_email


logger = logging.getLogger(__name__)


class LoginAttemptTracker:
    """Per-email failed sign-in counter with temporary lockout.

    Reads hit the process-local cache first and fall back to the durable
    store, hydrating the cache. Writes go to both. Durable-store failures are
    logged and tolerated: the cache keeps protecting this instance, and small
    cross-instance miscounts are acceptable.
    """

    def __init__(
        self,
        *,
        attempt_port: LoginAttemptPort,
        audit_port: AuditPort,
        max_attempts: int = 5,
        lockout_duration: timedelta = timedelta(minutes=15),
        reset_window: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utcnow,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self._attempt_port = attempt_port
        self._audit_port = audit_port
        self._max_attempts = max_attempts
        self._lockout_duration = lockout_duration
        self._reset_window = reset_window
        self._clock = clock
        self._cache: dict[str, LoginAttemptRecord] = {}
        self._lock = Lock()

    def record_failed_attempt(self, email: str, ip: str | None = None) -> LoginAttemptRecord:
        key = normalize_email(email)
        self._load(key)
        now = self._clock()

        with self._lock:
            current = self._cache.get(key)
            if self._starts_fresh(current, now):
                record = LoginAttemptRecord(
                    email=key,
                    count=1,
                    first_attempt_at=now,
                    last_attempt_at=now,
                )
            else:
                record = replace(current, count=current.count + 1, last_attempt_at=now)
            if record.count >= self._max_attempts:
                record = replace(record, locked_until=now + self._lockout_duration)
            self._cache[key] = record

        self._persist(record, ip=ip)
        self._audit_port.record("LOGIN_FAILED", {"email": key, "ip": ip, "attempts": record.count})
        if record.locked_until is not None:
            logger.warning(
                "login_attempt_tracker: account_locked attempts=%s locked_until=%s",
                record.count,
                record.locked_until.isoformat(),
            )
            self._audit_port.record(
                "ACCOUNT_LOCKED",
                {
                    "email": key,
                    "ip": ip,
                    "attempts": record.count,
                    "locked_until": record.locked_until.isoformat(),
                },
            )
        return record

    def is_locked(self, email: str) -> LockoutStatus:
        key = normalize_email(email)
        record = self._load(key)
        now = self._clock()
        if record is None or record.locked_until is None:
            return LockoutStatus(locked=False, attempts=record.count if record else 0)

        if now < record.locked_until:
            remaining_seconds = (record.locked_until - now).total_seconds()
            return LockoutStatus(
                locked=True,
                remaining_minutes=max(1, math.ceil(remaining_seconds / 60)),
                attempts=record.count,
            )

        with self._lock:
            cached = self._cache.get(key)
            if cached is not None and cached.locked_until is not None and now >= cached.locked_until:
                self._cache[key] = replace(cached, count=0, locked_until=None)
        return LockoutStatus(locked=False)

    def clear_attempts(self, email: str) -> None:
        key = normalize_email(email)
        with self._lock:
            self._cache.pop(key, None)
        try:
            self._attempt_port.delete(email=key)
        except DependencyError as exc:
            logger.warning("login_attempt_tracker: clear_failed error=%s", exc)

    def _starts_fresh(self, current: LoginAttemptRecord | None, now: datetime) -> bool:
        if current is None or current.count == 0:
            return True
        if current.locked_until is not None and now >= current.locked_until:
            return True
        return now - current.last_attempt_at > self._reset_window

    def _load(self, key: str) -> LoginAttemptRecord | None:
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            stored = self._attempt_port.get(email=key)
        except DependencyError as exc:
            logger.warning("login_attempt_tracker: load_failed error=%s", exc)
            return None
        if stored is None:
            return None

        with self._lock:
            return self._cache.setdefault(key, stored)

    def _persist(self, record: LoginAttemptRecord, *, ip: str | None) -> None:
        try:
            self._attempt_port.save(record, ip=ip)
        except DependencyError as exc:
            logger.warning("login_attempt_tracker: persist_failed error=%s", exc)
