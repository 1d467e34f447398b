from __future__ import annotations

import logging

from stellar_auth.application.dto.auth import LogoutInput
from stellar_auth.application.ports.refresh_token_ledger_port import RefreshTokenLedgerPort
from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.domain.exceptions import TokenError

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class LogoutSessionUseCase:
    def __init__(self, *, token_port: TokenPort, refresh_ledger: RefreshTokenLedgerPort):
        self._token_port = token_port
        self._refresh_ledger = refresh_ledger

    def execute(self, command: LogoutInput) -> bool:
        """Spend the presented refresh token; unusable tokens are a no-op."""
        try:
            claims = self._token_port.verify(
                "refresh",
                command.refresh_token,
                context=command.context,
            )
        except TokenError as exc:
            logger.info("logout_session: ignored_unusable_token reason=%s", type(exc).__name__)
            return False

        return self._refresh_ledger.spend(
            jti=claims.jti,
            user_id=claims.subject,
            expires_at=claims.expires_at,
            spent_at=utcnow(),
        )
