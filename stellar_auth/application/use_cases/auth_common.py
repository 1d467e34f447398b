from __future__ import annotations

from datetime import datetime, timezone

from stellar_auth.application.dto.auth import AuthUserOutput
from stellar_auth.domain.entities.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        email_verified=user.email_verified,
        role=user.role,
        created_at=user.created_at,
        last_signin_at=user.last_signin_at,
    )
