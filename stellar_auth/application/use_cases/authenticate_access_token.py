from __future__ import annotations

from stellar_auth.application.dto.auth import RequestContext
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.domain.entities.token_claims import AccessClaims
from stellar_auth.domain.exceptions import TokenContextMismatchError


class AuthenticateAccessTokenUseCase:
    def __init__(self, *, token_port: TokenPort, audit_port: AuditPort):
        self._token_port = token_port
        self._audit_port = audit_port

    def execute(self, *, token: str, context: RequestContext) -> AccessClaims:
        try:
            claims = self._token_port.verify("access", token, context=context)
        except TokenContextMismatchError:
            self._audit_port.record(
                "TOKEN_CONTEXT_MISMATCH",
                {"token_kind": "access", "ip": context.ip},
            )
            raise
        return claims
