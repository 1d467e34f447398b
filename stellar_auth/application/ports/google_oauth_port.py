from __future__ import annotations

from typing import Protocol

from stellar_auth.application.dto.auth import GoogleIdentityInfo


class GoogleOauthPort(Protocol):
    def authorization_url(self, *, state: str) -> str:
        ...

    def exchange_code(self, *, code: str) -> GoogleIdentityInfo:
        ...
