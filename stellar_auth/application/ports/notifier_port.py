from __future__ import annotations

from typing import Protocol


class NotifierPort(Protocol):
    def send_verification_email(self, *, email: str, token: str) -> None:
        ...

    def send_password_reset_email(self, *, email: str, token: str) -> None:
        ...

    def send_welcome_email(self, *, email: str, name: str | None) -> None:
        ...
