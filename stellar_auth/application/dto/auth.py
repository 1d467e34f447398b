from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class RequestContext:
    user_agent: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    email: str
    name: str | None
    avatar_url: str | None
    email_verified: bool
    role: str
    created_at: datetime
    last_signin_at: datetime | None


@dataclass(frozen=True)
class AuthTokensOutput:
    user: AuthUserOutput
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class SignUpInput:
    email: str
    password: str
    name: str | None
    context: RequestContext


@dataclass(frozen=True)
class SignUpOutput:
    session: AuthTokensOutput
    verification_email_sent: bool


@dataclass(frozen=True)
class SignInInput:
    email: str
    password: str
    context: RequestContext


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str
    context: RequestContext


@dataclass(frozen=True)
class LogoutInput:
    refresh_token: str
    context: RequestContext


@dataclass(frozen=True)
class RequestPasswordResetInput:
    email: str
    context: RequestContext


@dataclass(frozen=True)
class CompletePasswordResetInput:
    email: str
    token: str
    new_password: str
    context: RequestContext


@dataclass(frozen=True)
class RequestEmailVerificationInput:
    email: str


@dataclass(frozen=True)
class CompleteEmailVerificationInput:
    email: str
    token: str


@dataclass(frozen=True)
class BeginOAuthInput:
    redirect_to: str | None = None
    context: RequestContext = field(default_factory=RequestContext)


@dataclass(frozen=True)
class BeginOAuthOutput:
    authorization_url: str
    state: str


@dataclass(frozen=True)
class CompleteOAuthInput:
    code: str
    state: str
    context: RequestContext


@dataclass(frozen=True)
class CompleteOAuthOutput:
    session: AuthTokensOutput
    created: bool
    redirect_to: str | None


@dataclass(frozen=True)
class DeleteAccountInput:
    user_id: str
    context: RequestContext


@dataclass(frozen=True)
class GoogleIdentityInfo:
    subject: str
    email: str
    email_verified: bool
    name: str | None
    avatar_url: str | None


@dataclass(frozen=True)
class MintedToken:
    token: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class UpdateProfileInput:
    """Only the fields present in ``updates`` are changed; a ``None`` value clears one."""

    user_id: str
    updates: dict[str, str | None]
