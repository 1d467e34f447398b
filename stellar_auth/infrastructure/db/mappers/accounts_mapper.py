from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from stellar_auth.domain.entities.login_attempt import LoginAttemptRecord
from stellar_auth.domain.entities.one_time_token import OneTimeTokenRecord
from stellar_auth.domain.entities.user import OAuthIdentity, User


def _as_str(value: Any) -> str:
    return str(value)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        email=row["email"],
        password_hash=row.get("password_hash"),
        name=row.get("name"),
        avatar_url=row.get("avatar_url"),
        email_verified=bool(row["email_verified"]),
        role=row["role"],
        account_status=row["account_status"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        last_signin_at=as_utc(row.get("last_signin_at")),
    )


def map_row_to_oauth_identity(row: Mapping[str, Any]) -> OAuthIdentity:
    return OAuthIdentity(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        provider=row["provider"],
        provider_user_id=row["provider_user_id"],
        created_at=as_utc(row["created_at"]),
    )


def map_row_to_one_time_token(row: Mapping[str, Any]) -> OneTimeTokenRecord:
    return OneTimeTokenRecord(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        purpose=row["purpose"],
        token_hash=row["token_hash"],
        created_at=as_utc(row["created_at"]),
        expires_at=as_utc(row["expires_at"]),
        used_at=as_utc(row.get("used_at")),
    )


def map_row_to_login_attempt(row: Mapping[str, Any]) -> LoginAttemptRecord:
    return LoginAttemptRecord(
        email=row["email"],
        count=int(row["attempts"]),
        first_attempt_at=as_utc(row["first_attempt_at"]),
        last_attempt_at=as_utc(row["last_attempt_at"]),
        locked_until=as_utc(row.get("locked_until")),
    )
