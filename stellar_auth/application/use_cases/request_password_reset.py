from __future__ import annotations

import logging

from stellar_auth.application.dto.auth import RequestPasswordResetInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.domain.exceptions import DependencyError, ValidationError
from stellar_auth.domain.services.credentials_policy import is_valid_email, normalize_email


logger = logging.getLogger(__name__)


class RequestPasswordResetUseCase:
    """Email a reset token when the account exists; callers always see success."""

    def __init__(
        self,
        *,
        account_port: AccountPort,
        email_tokens: EmailTokenService,
        notifier: NotifierPort,
        audit_port: AuditPort,
    ):
        self._account_port = account_port
        self._email_tokens = email_tokens
        self._notifier = notifier
        self._audit_port = audit_port

    def execute(self, command: RequestPasswordResetInput) -> None:
        email = normalize_email(command.email)
        if not is_valid_email(email):
            raise ValidationError("A valid email address is required.")

        user = self._account_port.get_user_by_email(email=email)
        if user is None or not user.is_active:
            logger.info("request_password_reset: no_active_account")
            return

        self._audit_port.record(
            "PASSWORD_RESET_REQUESTED",
            {"user_id": user.id, "ip": command.context.ip},
        )
        try:
            token = self._email_tokens.issue(user=user, purpose="password_reset")
            self._notifier.send_password_reset_email(email=user.email, token=token)
        except DependencyError as exc:
            logger.warning("request_password_reset: email_failed user_id=%s error=%s", user.id, exc)
