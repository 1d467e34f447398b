from __future__ import annotations

from stellar_auth.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.refresh_token_ledger_port import RefreshTokenLedgerPort
from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.domain.exceptions import (
    RefreshSessionInvalidError,
    RefreshTokenReusedError,
    TokenContextMismatchError,
)

from .auth_common import utcnow


class RefreshSessionUseCase:
    def __init__(
        self,
        *,
        account_port: AccountPort,
        token_port: TokenPort,
        refresh_ledger: RefreshTokenLedgerPort,
        session_issuer: SessionIssuer,
        audit_port: AuditPort,
    ):
        self._account_port = account_port
        self._token_port = token_port
        self._refresh_ledger = refresh_ledger
        self._session_issuer = session_issuer
        self._audit_port = audit_port

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        try:
            claims = self._token_port.verify(
                "refresh",
                command.refresh_token,
                context=command.context,
            )
        except TokenContextMismatchError:
            self._audit_port.record(
                "TOKEN_CONTEXT_MISMATCH",
                {"token_kind": "refresh", "ip": command.context.ip},
            )
            raise

        user = self._account_port.get_user_by_id(user_id=claims.subject)
        if user is None or not user.is_active:
            raise RefreshSessionInvalidError("Invalid refresh session.")

        spent = self._refresh_ledger.spend(
            jti=claims.jti,
            user_id=user.id,
            expires_at=claims.expires_at,
            spent_at=utcnow(),
        )
        if not spent:
            self._audit_port.record(
                "REFRESH_TOKEN_REUSED",
                {"user_id": user.id, "jti": claims.jti, "ip": command.context.ip},
            )
            raise RefreshTokenReusedError("Refresh token has already been used.")

        return self._session_issuer.issue(user=user, context=command.context)
