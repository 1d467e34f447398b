from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt

from stellar_auth.application.dto.auth import MintedToken, RequestContext
from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.domain.entities.token_claims import (
    ONE_TIME_KINDS,
    AccessClaims,
    ClientBinding,
    OneTimeClaims,
    RefreshClaims,
    TokenClaims,
    TokenKind,
)
from stellar_auth.domain.exceptions import (
    ConfigurationError,
    TokenAlgorithmRejectedError,
    TokenContextMismatchError,
    TokenExpiredError,
    TokenMalformedError,
    TokenTypeMismatchError,
)


logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BINDING_HASH_LENGTH = 16
MIN_SECRET_LENGTH = 32
UNKNOWN_CONTEXT_VALUE = "unknown"

_REQUIRED_CLAIMS = ["sub", "jti", "iat", "exp", "iss", "typ"]


def binding_hash(value: str | None) -> str:
    raw = value or UNKNOWN_CONTEXT_VALUE
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:BINDING_HASH_LENGTH]


def build_client_binding(context: RequestContext | None) -> ClientBinding:
    context = context or RequestContext()
    return ClientBinding(
        user_agent_hash=binding_hash(context.user_agent),
        ip_hash=binding_hash(context.ip),
    )


def emails_match(left: str, right: str) -> bool:
    """Case-folded, constant-time email comparison.

    Both sides are digested first so the byte comparison always runs over
    equal-length inputs regardless of the email lengths.
    """
    left_digest = hashlib.sha256(left.strip().casefold().encode("utf-8")).digest()
    right_digest = hashlib.sha256(right.strip().casefold().encode("utf-8")).digest()
    return hmac.compare_digest(left_digest, right_digest)


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        jwt_secret: str,
        verify_secret: str | None = None,
        issuer: str,
        audience: str,
        access_ttl_minutes: int = 15,
        refresh_ttl_days: int = 7,
        verification_ttl_hours: int = 24,
        reset_ttl_minutes: int = 60,
        clock_skew_seconds: int = 30,
        strict_binding: bool = False,
    ):
        verify_secret = verify_secret or jwt_secret
        for secret in (jwt_secret, verify_secret):
            if len(secret) < MIN_SECRET_LENGTH:
                raise ConfigurationError(
                    f"Token signing secrets must be at least {MIN_SECRET_LENGTH} characters."
                )
        self._jwt_secret = jwt_secret
        self._verify_secret = verify_secret
        self._issuer = issuer
        self._audience = audience
        self._ttls: dict[str, timedelta] = {
            "access": timedelta(minutes=access_ttl_minutes),
            "refresh": timedelta(days=refresh_ttl_days),
            "verification": timedelta(hours=verification_ttl_hours),
            "password_reset": timedelta(minutes=reset_ttl_minutes),
        }
        self._clock_skew_seconds = clock_skew_seconds
        self._strict_binding = strict_binding

    def ttl_for(self, kind: TokenKind) -> timedelta:
        return self._ttls[kind]

    def mint(
        self,
        kind: TokenKind,
        *,
        subject: str,
        now: datetime,
        email: str | None = None,
        role: str | None = None,
        context: RequestContext | None = None,
        jti: str | None = None,
    ) -> MintedToken:
        if kind not in self._ttls:
            raise ValueError(f"Unknown token kind: {kind}")
        expires_at = now + self._ttls[kind]
        token_id = jti or str(uuid4())
        payload: dict[str, Any] = {
            "sub": subject,
            "typ": kind,
            "jti": token_id,
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if kind == "access":
            if not email:
                raise ValueError("Access tokens require an email claim.")
            payload["email"] = email
            payload["role"] = role or "user"
        if kind in ONE_TIME_KINDS:
            if not email:
                raise ValueError("One-time tokens require an email claim.")
            payload["email"] = email.strip().casefold()
        else:
            binding = build_client_binding(context)
            payload["aud"] = self._audience
            payload["ua"] = binding.user_agent_hash
            payload["ip"] = binding.ip_hash

        token = jwt.encode(payload, self._key_for(kind), algorithm=ALGORITHM)
        return MintedToken(token=token, jti=token_id, expires_at=expires_at)

    def verify(
        self,
        kind: TokenKind,
        token: str,
        *,
        context: RequestContext | None = None,
        expected_email: str | None = None,
    ) -> TokenClaims:
        payload = self._decode(kind, token)

        token_kind = payload.get("typ")
        if token_kind != kind:
            raise TokenTypeMismatchError("Invalid token type.")

        if kind in ONE_TIME_KINDS:
            return self._one_time_claims(kind, payload, expected_email)

        if payload.get("aud") != self._audience:
            raise TokenMalformedError("Invalid token audience.")
        self._check_binding(payload, context)
        if kind == "access":
            return self._access_claims(payload)
        return self._refresh_claims(payload)

    def verify_email_token(self, token: str, expected_email: str) -> OneTimeClaims:
        return self.verify("verification", token, expected_email=expected_email)

    def verify_password_reset_token(self, token: str, expected_email: str) -> OneTimeClaims:
        return self.verify("password_reset", token, expected_email=expected_email)

    def _key_for(self, kind: TokenKind) -> str:
        if kind in ONE_TIME_KINDS:
            return self._verify_secret
        return self._jwt_secret

    def _decode(self, kind: TokenKind, token: str) -> dict[str, Any]:
        token = (token or "").strip()
        if not token:
            raise TokenMalformedError("Missing token.")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise TokenMalformedError("Invalid token.") from exc
        if header.get("alg") != ALGORITHM:
            raise TokenAlgorithmRejectedError("Invalid token algorithm.")

        try:
            return jwt.decode(
                token,
                self._key_for(kind),
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                leeway=self._clock_skew_seconds,
                options={"verify_aud": False, "require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except jwt.InvalidAlgorithmError as exc:
            raise TokenAlgorithmRejectedError("Invalid token algorithm.") from exc
        except jwt.PyJWTError as exc:
            raise TokenMalformedError("Invalid token.") from exc

    def _check_binding(self, payload: dict[str, Any], context: RequestContext | None) -> None:
        expected = build_client_binding(context)
        ua_ok = hmac.compare_digest(str(payload.get("ua", "")), expected.user_agent_hash)
        ip_ok = hmac.compare_digest(str(payload.get("ip", "")), expected.ip_hash)
        if ua_ok and ip_ok:
            return
        if self._strict_binding:
            raise TokenContextMismatchError("Token context mismatch - possible token theft detected.")
        logger.warning(
            "token_service: binding_mismatch_ignored jti=%s ua_ok=%s ip_ok=%s",
            payload.get("jti"),
            ua_ok,
            ip_ok,
        )

    def _one_time_claims(
        self,
        kind: TokenKind,
        payload: dict[str, Any],
        expected_email: str | None,
    ) -> OneTimeClaims:
        if "aud" in payload:
            raise TokenMalformedError("Invalid token audience.")
        if not expected_email:
            raise TokenMalformedError("An expected email is required for one-time tokens.")
        embedded_email = payload.get("email")
        if not isinstance(embedded_email, str) or not emails_match(embedded_email, expected_email):
            raise TokenMalformedError("Invalid token.")
        return OneTimeClaims(
            subject=_str_claim(payload, "sub"),
            email=embedded_email,
            jti=_str_claim(payload, "jti"),
            issuer=_str_claim(payload, "iss"),
            issued_at=_ts_claim(payload, "iat"),
            expires_at=_ts_claim(payload, "exp"),
            kind=kind,
        )

    def _access_claims(self, payload: dict[str, Any]) -> AccessClaims:
        return AccessClaims(
            subject=_str_claim(payload, "sub"),
            email=_str_claim(payload, "email"),
            role=_str_claim(payload, "role"),
            jti=_str_claim(payload, "jti"),
            issuer=_str_claim(payload, "iss"),
            audience=_str_claim(payload, "aud"),
            issued_at=_ts_claim(payload, "iat"),
            expires_at=_ts_claim(payload, "exp"),
            binding=ClientBinding(
                user_agent_hash=_str_claim(payload, "ua"),
                ip_hash=_str_claim(payload, "ip"),
            ),
        )

    def _refresh_claims(self, payload: dict[str, Any]) -> RefreshClaims:
        return RefreshClaims(
            subject=_str_claim(payload, "sub"),
            jti=_str_claim(payload, "jti"),
            issuer=_str_claim(payload, "iss"),
            audience=_str_claim(payload, "aud"),
            issued_at=_ts_claim(payload, "iat"),
            expires_at=_ts_claim(payload, "exp"),
            binding=ClientBinding(
                user_agent_hash=_str_claim(payload, "ua"),
                ip_hash=_str_claim(payload, "ip"),
            ),
        )


def _str_claim(payload: dict[str, Any], name: str) -> str:
    value = payload.get(name)
    if not value or not isinstance(value, str):
        raise TokenMalformedError(f"Invalid token claim: {name}.")
    return value


def _ts_claim(payload: dict[str, Any], name: str) -> datetime:
    value = payload.get(name)
    if not isinstance(value, (int, float)):
        raise TokenMalformedError(f"Invalid token claim: {name}.")
    return datetime.fromtimestamp(value, tz=timezone.utc)
