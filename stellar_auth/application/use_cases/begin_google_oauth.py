from __future__ import annotations

from typing import Iterable

from stellar_auth.application.dto.auth import BeginOAuthInput, BeginOAuthOutput
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.google_oauth_port import GoogleOauthPort
from stellar_auth.application.services.oauth_state_store import OAuthStateStore
from stellar_auth.domain.exceptions import ValidationError
from stellar_auth.domain.services.redirects import validate_frontend_url


class BeginGoogleOAuthUseCase:
    """Start the Google authorization-code flow.

    A ``redirect_to`` is only honored when its origin is one of the configured
    frontend origins; the callback later sends the access token there.
    """

    def __init__(
        self,
        *,
        google_oauth_port: GoogleOauthPort,
        state_store: OAuthStateStore,
        audit_port: AuditPort,
        allowed_redirect_origins: Iterable[str],
    ):
        self._google_oauth_port = google_oauth_port
        self._state_store = state_store
        self._audit_port = audit_port
        self._allowed_redirect_origins = tuple(allowed_redirect_origins)

    def execute(self, command: BeginOAuthInput) -> BeginOAuthOutput:
        redirect_to = self._checked_redirect(command) if command.redirect_to else None
        state = self._state_store.issue(redirect_to=redirect_to)
        return BeginOAuthOutput(
            authorization_url=self._google_oauth_port.authorization_url(state=state.value),
            state=state.value,
        )

    def _checked_redirect(self, command: BeginOAuthInput) -> str:
        try:
            return validate_frontend_url(command.redirect_to, allowed_origins=self._allowed_redirect_origins)
        except ValidationError:
            self._audit_port.record(
                "SUSPICIOUS_ACTIVITY",
                {
                    "reason": "oauth_redirect_rejected",
                    "redirect_to": command.redirect_to[:256],
                    "ip": command.context.ip,
                },
            )
            raise
