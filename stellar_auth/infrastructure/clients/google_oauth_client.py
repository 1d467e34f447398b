from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from google.oauth2 import id_token

from stellar_auth.application.dto.auth import GoogleIdentityInfo
from stellar_auth.application.ports.google_oauth_port import GoogleOauthPort
from stellar_auth.domain.exceptions import ConfigurationError, OAuthProviderError


logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
SCOPES = ("openid", "email", "profile")


class GoogleOAuthClient(GoogleOauthPort):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret and self._redirect_uri)

    def authorization_url(self, *, state: str) -> str:
        self._require_configured()
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "response_type": "code",
                "scope": " ".join(SCOPES),
                "access_type": "online",
                "prompt": "select_account",
                "state": state,
            }
        )
        return f"{AUTHORIZATION_ENDPOINT}?{query}"

    def exchange_code(self, *, code: str) -> GoogleIdentityInfo:
        self._require_configured()
        # Authorization codes are single use, so the exchange is not retried.
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    TOKEN_ENDPOINT,
                    data={
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_oauth_client: code_exchange_failed error=%s", exc)
            raise OAuthProviderError("Google code exchange failed.") from exc

        raw_id_token = payload.get("id_token")
        if not raw_id_token:
            raise OAuthProviderError("Google token response missing id_token.")
        return self.identity_from_id_token(raw_id_token)

    def identity_from_id_token(self, raw_id_token: str) -> GoogleIdentityInfo:
        try:
            claims = id_token_verify(token=raw_id_token, audience=self._client_id)
        except (google_exceptions.GoogleAuthError, ValueError) as exc:
            logger.warning("google_oauth_client: id_token_rejected error=%s", exc)
            raise OAuthProviderError("Invalid Google id_token.") from exc

        email = claims.get("email")
        subject = claims.get("sub")
        if not email or not subject:
            raise OAuthProviderError("Google id_token missing required claims.")

        email_verified_raw = claims.get("email_verified", False)
        email_verified = bool(email_verified_raw)
        if isinstance(email_verified_raw, str):
            email_verified = email_verified_raw.lower() == "true"

        name = claims.get("name") if isinstance(claims.get("name"), str) else None
        picture = claims.get("picture") if isinstance(claims.get("picture"), str) else None
        return GoogleIdentityInfo(
            subject=str(subject),
            email=str(email),
            email_verified=email_verified,
            name=name,
            avatar_url=picture,
        )

    def _require_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("Google OAuth is not configured.")


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)
