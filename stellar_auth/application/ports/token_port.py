from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from stellar_auth.application.dto.auth import MintedToken, RequestContext
from stellar_auth.domain.entities.token_claims import TokenClaims, TokenKind


class TokenPort(Protocol):
    def ttl_for(self, kind: TokenKind) -> timedelta:
        ...

    def mint(
        self,
        kind: TokenKind,
        *,
        subject: str,
        now: datetime,
        email: str | None = None,
        role: str | None = None,
        context: RequestContext | None = None,
        jti: str | None = None,
    ) -> MintedToken:
        ...

    def verify(
        self,
        kind: TokenKind,
        token: str,
        *,
        context: RequestContext | None = None,
        expected_email: str | None = None,
    ) -> TokenClaims:
        ...
