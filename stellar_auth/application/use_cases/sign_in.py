from __future__ import annotations

from stellar_auth.application.dto.auth import AuthTokensOutput, SignInInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.password_hasher_port import PasswordHasherPort
from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.domain.exceptions import (
    AccountLockedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
)
from stellar_auth.domain.services.credentials_policy import normalize_email

from .auth_common import utcnow


INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
_TIMING_DUMMY_PASSWORD = "stellar-auth-timing-dummy"


class SignInUseCase:
    def __init__(
        self,
        *,
        account_port: AccountPort,
        password_hasher: PasswordHasherPort,
        session_issuer: SessionIssuer,
        login_attempts: LoginAttemptTracker,
        audit_port: AuditPort,
        require_verified_email: bool = False,
    ):
        self._account_port = account_port
        self._password_hasher = password_hasher
        self._session_issuer = session_issuer
        self._login_attempts = login_attempts
        self._audit_port = audit_port
        self._require_verified_email = require_verified_email
        # Unknown emails still pay for one hash verification.
        self._dummy_hash = password_hasher.hash(_TIMING_DUMMY_PASSWORD)

    def execute(self, command: SignInInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        ip = command.context.ip

        lockout = self._login_attempts.is_locked(email)
        if lockout.locked:
            minutes = lockout.remaining_minutes or 1
            raise AccountLockedError(
                f"Account temporarily locked due to failed sign-in attempts. Try again in {minutes} minutes.",
                remaining_minutes=minutes,
            )

        user = self._account_port.get_user_by_email(email=email)
        if user is None or not user.is_active or not user.password_hash:
            self._password_hasher.verify(command.password, self._dummy_hash)
            self._login_attempts.record_failed_attempt(email, ip)
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        verified, replacement_hash = self._password_hasher.verify_and_update(
            command.password,
            user.password_hash,
        )
        if not verified:
            self._login_attempts.record_failed_attempt(email, ip)
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        if replacement_hash:
            self._account_port.update_password(
                user_id=user.id,
                password_hash=replacement_hash,
                updated_at=utcnow(),
            )

        self._login_attempts.clear_attempts(email)

        if self._require_verified_email and not user.email_verified:
            raise EmailNotVerifiedError("Please verify your email before signing in.")

        output = self._session_issuer.issue(user=user, context=command.context)
        self._audit_port.record(
            "LOGIN_SUCCESS",
            {"user_id": user.id, "email": email, "method": "password", "ip": ip},
        )
        return output
