from __future__ import annotations

import html
import logging
import time
from urllib.parse import urlencode

import httpx

from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.domain.exceptions import DependencyError


logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class _RetryableEmailError(Exception):
    pass


def build_link(base_url: str, path: str, *, token: str, email: str) -> str:
    return f"{base_url.rstrip('/')}{path}?{urlencode({'token': token, 'email': email})}"


class BrevoEmailClient(NotifierPort):
    """Transactional email over the Brevo HTTP API.

    Transport errors, 429 and 5xx responses are retried with exponential
    backoff; other 4xx responses fail immediately. Exhausted retries raise
    DependencyError, which callers treat as non-fatal.
    """

    def __init__(
        self,
        *,
        api_key: str,
        sender_name: str,
        sender_address: str,
        public_base_url: str,
        frontend_url: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
        sleep=time.sleep,
    ):
        self._api_key = api_key
        self._sender = {"name": sender_name, "email": sender_address}
        self._public_base_url = public_base_url
        self._frontend_url = frontend_url
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._transport = transport
        self._sleep = sleep

    def send_verification_email(self, *, email: str, token: str) -> None:
        link = build_link(self._public_base_url, "/v1/auth/verify-email", token=token, email=email)
        self._send(
            to=email,
            subject="Verify your email address",
            html=(
                "<p>Welcome! Confirm your email address to finish setting up your account.</p>"
                f'<p><a href="{link}">Verify email</a></p>'
                "<p>This link expires in 24 hours. If you did not sign up, ignore this message.</p>"
            ),
            kind="verification",
        )

    def send_password_reset_email(self, *, email: str, token: str) -> None:
        link = build_link(self._frontend_url, "/reset-password", token=token, email=email)
        self._send(
            to=email,
            subject="Reset your password",
            html=(
                "<p>We received a request to reset your password.</p>"
                f'<p><a href="{link}">Choose a new password</a></p>'
                "<p>This link expires in 1 hour and can be used once. "
                "If you did not ask for a reset, ignore this message.</p>"
            ),
            kind="password_reset",
        )

    def send_welcome_email(self, *, email: str, name: str | None) -> None:
        greeting = f"Hi {html.escape(name)}," if name else "Hi,"
        self._send(
            to=email,
            subject="Welcome aboard",
            html=f"<p>{greeting}</p><p>Your account is ready.</p>",
            kind="welcome",
        )

    def _send(self, *, to: str, subject: str, html: str, kind: str) -> None:
        body = {
            "sender": self._sender,
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html,
        }
        headers = {"api-key": self._api_key, "accept": "application/json"}
        attempts = max(1, self._max_retries)
        delay = 0.5
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                    response = client.post(BREVO_SEND_URL, json=body, headers=headers)
                if response.status_code == 429 or response.status_code >= 500:
                    raise _RetryableEmailError(f"status={response.status_code}")
                response.raise_for_status()
                logger.info("brevo_email_client: sent kind=%s attempt=%s", kind, attempt)
                return
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "brevo_email_client: rejected kind=%s status=%s",
                    kind,
                    exc.response.status_code,
                )
                raise DependencyError("Email provider rejected the message.") from exc
            except (httpx.TransportError, _RetryableEmailError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "brevo_email_client: send_retry kind=%s attempt=%s/%s error=%s",
                    kind,
                    attempt,
                    attempts,
                    exc,
                )
                self._sleep(delay)
                delay *= 2

        raise DependencyError(f"Email delivery failed after retries: {last_exc}") from last_exc


class LoggingNotifier(NotifierPort):
    """Development notifier: writes the links to the log instead of sending mail."""

    def __init__(self, *, public_base_url: str, frontend_url: str):
        self._public_base_url = public_base_url
        self._frontend_url = frontend_url

    def send_verification_email(self, *, email: str, token: str) -> None:
        link = build_link(self._public_base_url, "/v1/auth/verify-email", token=token, email=email)
        logger.info("logging_notifier: verification email=%s link=%s", email, link)

    def send_password_reset_email(self, *, email: str, token: str) -> None:
        link = build_link(self._frontend_url, "/reset-password", token=token, email=email)
        logger.info("logging_notifier: password_reset email=%s link=%s", email, link)

    def send_welcome_email(self, *, email: str, name: str | None) -> None:
        logger.info("logging_notifier: welcome email=%s", email)
