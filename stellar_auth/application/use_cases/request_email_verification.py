from __future__ import annotations

import logging

from stellar_auth.application.dto.auth import RequestEmailVerificationInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.domain.exceptions import DependencyError, ValidationError
from stellar_auth.domain.services.credentials_policy import is_valid_email, normalize_email


logger = logging.getLogger(__name__)


class RequestEmailVerificationUseCase:
    """Resend the verification email; silent for unknown or verified accounts."""

    def __init__(
        self,
        *,
        account_port: AccountPort,
        email_tokens: EmailTokenService,
        notifier: NotifierPort,
    ):
        self._account_port = account_port
        self._email_tokens = email_tokens
        self._notifier = notifier

    def execute(self, command: RequestEmailVerificationInput) -> None:
        email = normalize_email(command.email)
        if not is_valid_email(email):
            raise ValidationError("A valid email address is required.")

        user = self._account_port.get_user_by_email(email=email)
        if user is None or not user.is_active or user.email_verified:
            return

        try:
            token = self._email_tokens.issue(user=user, purpose="verification")
            self._notifier.send_verification_email(email=user.email, token=token)
        except DependencyError as exc:
            logger.warning("request_email_verification: email_failed user_id=%s error=%s", user.id, exc)
