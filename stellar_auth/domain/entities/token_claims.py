from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Union


TokenKind = Literal["access", "refresh", "verification", "password_reset"]
OneTimePurpose = Literal["verification", "password_reset"]

ONE_TIME_KINDS: tuple[TokenKind, ...] = ("verification", "password_reset")


@dataclass(frozen=True)
class ClientBinding:
    """Truncated one-way digests of the client context a token was minted for."""

    user_agent_hash: str
    ip_hash: str


@dataclass(frozen=True)
class AccessClaims:
    subject: str
    email: str
    role: str
    jti: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime
    binding: ClientBinding
    kind: Literal["access"] = "access"


@dataclass(frozen=True)
class RefreshClaims:
    subject: str
    jti: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime
    binding: ClientBinding
    kind: Literal["refresh"] = "refresh"


@dataclass(frozen=True)
class OneTimeClaims:
    subject: str
    email: str
    jti: str
    issuer: str
    issued_at: datetime
    expires_at: datetime
    kind: OneTimePurpose


TokenClaims = Union[AccessClaims, RefreshClaims, OneTimeClaims]
