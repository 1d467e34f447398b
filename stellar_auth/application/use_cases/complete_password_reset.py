from __future__ import annotations

from stellar_auth.application.dto.auth import CompletePasswordResetInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.password_hasher_port import PasswordHasherPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker
from stellar_auth.domain.exceptions import UserNotFoundError, ValidationError
from stellar_auth.domain.services.credentials_policy import (
    normalize_email,
    password_policy_violations,
)

from .auth_common import utcnow


class CompletePasswordResetUseCase:
    def __init__(
        self,
        *,
        account_port: AccountPort,
        password_hasher: PasswordHasherPort,
        email_tokens: EmailTokenService,
        login_attempts: LoginAttemptTracker,
        audit_port: AuditPort,
    ):
        self._account_port = account_port
        self._password_hasher = password_hasher
        self._email_tokens = email_tokens
        self._login_attempts = login_attempts
        self._audit_port = audit_port

    def execute(self, command: CompletePasswordResetInput) -> None:
        email = normalize_email(command.email)
        violations = password_policy_violations(command.new_password)
        if violations:
            raise ValidationError(f"Password must contain {', '.join(violations)}.")

        user_id = self._email_tokens.redeem(
            token=command.token,
            email=email,
            purpose="password_reset",
        )
        user = self._account_port.get_user_by_id(user_id=user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found.")

        self._account_port.update_password(
            user_id=user.id,
            password_hash=self._password_hasher.hash(command.new_password),
            updated_at=utcnow(),
        )
        self._login_attempts.clear_attempts(email)
        self._audit_port.record(
            "PASSWORD_RESET_COMPLETED",
            {"user_id": user.id, "ip": command.context.ip},
        )
