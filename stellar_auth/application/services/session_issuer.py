from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable

from stellar_auth.application.dto.auth import AuthTokensOutput, RequestContext
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.application.use_cases.auth_common import build_auth_user_output, utcnow
from stellar_auth.domain.entities.user import User


class SessionIssuer:
    """Mints an access/refresh pair bound to the requesting client."""

    def __init__(
        self,
        *,
        account_port: AccountPort,
        token_port: TokenPort,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._account_port = account_port
        self._token_port = token_port
        self._clock = clock

    def issue(
        self,
        *,
        user: User,
        context: RequestContext,
        record_signin: bool = True,
    ) -> AuthTokensOutput:
        now = self._clock()
        access = self._token_port.mint(
            "access",
            subject=user.id,
            email=user.email,
            role=user.role,
            context=context,
            now=now,
        )
        refresh = self._token_port.mint("refresh", subject=user.id, context=context, now=now)

        if record_signin:
            self._account_port.update_last_signin(user_id=user.id, signed_in_at=now)
            user = replace(user, last_signin_at=now)

        return AuthTokensOutput(
            user=build_auth_user_output(user),
            access_token=access.token,
            refresh_token=refresh.token,
            access_expires_at=access.expires_at,
            refresh_expires_at=refresh.expires_at,
        )
