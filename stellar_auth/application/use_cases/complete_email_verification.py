from __future__ import annotations

import logging
from dataclasses import replace

from stellar_auth.application.dto.auth import AuthUserOutput, CompleteEmailVerificationInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.domain.exceptions import DependencyError, UserNotFoundError
from stellar_auth.domain.services.credentials_policy import normalize_email

from .auth_common import build_auth_user_output, utcnow


logger = logging.getLogger(__name__)


class CompleteEmailVerificationUseCase:
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

    def execute(self, command: CompleteEmailVerificationInput) -> AuthUserOutput:
        email = normalize_email(command.email)
        user_id = self._email_tokens.redeem(token=command.token, email=email, purpose="verification")

        user = self._account_port.get_user_by_id(user_id=user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found.")
        if user.email_verified:
            return build_auth_user_output(user)

        now = utcnow()
        self._account_port.set_email_verified(user_id=user.id, verified_at=now)
        user = replace(user, email_verified=True, updated_at=now)
        self._audit_port.record("EMAIL_VERIFIED", {"user_id": user.id, "email": user.email})

        try:
            self._notifier.send_welcome_email(email=user.email, name=user.name)
        except DependencyError as exc:
            logger.warning("complete_email_verification: welcome_email_failed user_id=%s error=%s", user.id, exc)
        return build_auth_user_output(user)
