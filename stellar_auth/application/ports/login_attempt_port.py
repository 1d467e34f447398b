from __future__ import annotations

from typing import Protocol

from stellar_auth.domain.entities.login_attempt import LoginAttemptRecord


class LoginAttemptPort(Protocol):
    def get(self, *, email: str) -> LoginAttemptRecord | None:
        ...

    def save(self, record: LoginAttemptRecord, *, ip: str | None) -> None:
        ...

    def delete(self, *, email: str) -> None:
        ...
