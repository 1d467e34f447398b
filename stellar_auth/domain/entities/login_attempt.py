from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LoginAttemptRecord:
    email: str
    count: int
    first_attempt_at: datetime
    last_attempt_at: datetime
    locked_until: datetime | None = None


@dataclass(frozen=True)
class LockoutStatus:
    locked: bool
    remaining_minutes: int | None = None
    attempts: int = 0
