from __future__ import annotations

import logging
from uuid import uuid4

from stellar_auth.application.dto.auth import SignUpInput, SignUpOutput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.ports.password_hasher_port import PasswordHasherPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.domain.entities.user import User
from stellar_auth.domain.exceptions import DependencyError, ValidationError
from stellar_auth.domain.services.credentials_policy import (
    is_valid_email,
    normalize_email,
    password_policy_violations,
)

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class SignUpUseCase:
    def __init__(
        self,
        *,
        account_port: AccountPort,
        password_hasher: PasswordHasherPort,
        session_issuer: SessionIssuer,
        email_tokens: EmailTokenService,
        notifier: NotifierPort,
        audit_port: AuditPort,
    ):
        self._account_port = account_port
        self._password_hasher = password_hasher
        self._session_issuer = session_issuer
        self._email_tokens = email_tokens
        self._notifier = notifier
        self._audit_port = audit_port

    def execute(self, command: SignUpInput) -> SignUpOutput:
        email = normalize_email(command.email)
        name = command.name.strip() if command.name else None

        if not is_valid_email(email):
            raise ValidationError("A valid email address is required.")
        violations = password_policy_violations(command.password)
        if violations:
            raise ValidationError(f"Password must contain {', '.join(violations)}.")

        password_hash = self._password_hasher.hash(command.password)

        # Uniqueness is enforced by the store's constraint, not a pre-read.
        user = self._account_port.create_user(
            user_id=str(uuid4()),
            email=email,
            password_hash=password_hash,
            name=name or None,
            email_verified=False,
            created_at=utcnow(),
        )
        self._audit_port.record(
            "ACCOUNT_CREATED",
            {"user_id": user.id, "method": "password", "ip": command.context.ip},
        )

        sent = self._send_verification(user)
        session = self._session_issuer.issue(user=user, context=command.context, record_signin=False)
        return SignUpOutput(session=session, verification_email_sent=sent)

    def _send_verification(self, user: User) -> bool:
        try:
            token = self._email_tokens.issue(user=user, purpose="verification")
            self._notifier.send_verification_email(email=user.email, token=token)
        except DependencyError as exc:
            logger.warning("sign_up: verification_email_failed user_id=%s error=%s", user.id, exc)
            return False
        return True
