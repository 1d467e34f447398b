from __future__ import annotations

import logging
from dataclasses import replace
from uuid import uuid4

from stellar_auth.application.dto.auth import CompleteOAuthInput, CompleteOAuthOutput, GoogleIdentityInfo
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.google_oauth_port import GoogleOauthPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.services.oauth_state_store import OAuthStateStore
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.domain.entities.user import User
from stellar_auth.domain.exceptions import (
    AccountAlreadyExistsError,
    AuthenticationError,
    ConflictError,
    DependencyError,
    ValidationError,
)
from stellar_auth.domain.services.credentials_policy import normalize_email

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class CompleteGoogleOAuthUseCase:
    def __init__(
        self,
        *,
        account_port: AccountPort,
        google_oauth_port: GoogleOauthPort,
        state_store: OAuthStateStore,
        session_issuer: SessionIssuer,
        notifier: NotifierPort,
        audit_port: AuditPort,
    ):
        self._account_port = account_port
        self._google_oauth_port = google_oauth_port
        self._state_store = state_store
        self._session_issuer = session_issuer
        self._notifier = notifier
        self._audit_port = audit_port

    def execute(self, command: CompleteOAuthInput) -> CompleteOAuthOutput:
        state = self._state_store.consume(command.state)
        if not command.code:
            raise ValidationError("Authorization code is required.")

        try:
            google_identity = self._google_oauth_port.exchange_code(code=command.code)
        except DependencyError as exc:
            self._audit_port.record(
                "GOOGLE_OAUTH_FAILED",
                {"reason": type(exc).__name__, "ip": command.context.ip},
            )
            raise

        if not google_identity.email_verified:
            self._audit_port.record(
                "GOOGLE_OAUTH_FAILED",
                {"reason": "email_not_verified", "ip": command.context.ip},
            )
            raise AuthenticationError("Unable to sign in with Google.")

        user, created = self._resolve_user(google_identity)
        if not user.is_active:
            raise AuthenticationError("Unable to sign in with Google.")

        now = utcnow()
        if not user.email_verified:
            self._account_port.set_email_verified(user_id=user.id, verified_at=now)
            user = replace(user, email_verified=True)
        self._account_port.update_profile_if_empty(
            user_id=user.id,
            name=google_identity.name,
            avatar_url=google_identity.avatar_url,
            updated_at=now,
        )
        user = replace(
            user,
            name=user.name or google_identity.name,
            avatar_url=user.avatar_url or google_identity.avatar_url,
        )

        session = self._session_issuer.issue(user=user, context=command.context)
        self._audit_port.record(
            "LOGIN_SUCCESS",
            {"user_id": user.id, "email": user.email, "method": "google", "ip": command.context.ip},
        )
        if created:
            try:
                self._notifier.send_welcome_email(email=user.email, name=user.name)
            except DependencyError as exc:
                logger.warning("complete_google_oauth: welcome_email_failed user_id=%s error=%s", user.id, exc)

        return CompleteOAuthOutput(session=session, created=created, redirect_to=state.redirect_to)

    def _resolve_user(self, google_identity: GoogleIdentityInfo) -> tuple[User, bool]:
        email = normalize_email(google_identity.email)
        linked = self._account_port.get_oauth_identity(
            provider="google",
            provider_user_id=google_identity.subject,
        )
        if linked is not None:
            user = self._account_port.get_user_by_id(user_id=linked.user_id)
            if user is None:
                raise AuthenticationError("Unable to sign in with Google.")
            return user, False

        created = False
        user = self._account_port.get_user_by_email(email=email)
        if user is None:
            try:
                user = self._account_port.create_user(
                    user_id=str(uuid4()),
                    email=email,
                    password_hash=None,
                    name=google_identity.name,
                    email_verified=True,
                    created_at=utcnow(),
                )
                created = True
            except AccountAlreadyExistsError:
                # Lost a race with a concurrent sign-up for the same email.
                user = self._account_port.get_user_by_email(email=email)
                if user is None:
                    raise
        if created:
            self._audit_port.record("ACCOUNT_CREATED", {"user_id": user.id, "method": "google"})

        try:
            self._account_port.link_oauth_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider="google",
                provider_user_id=google_identity.subject,
                created_at=utcnow(),
            )
        except ConflictError:
            logger.info("complete_google_oauth: identity_already_linked user_id=%s", user.id)
        return user, created
