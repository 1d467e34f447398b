from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


AccountStatus = Literal["active", "deleted"]
UserRole = Literal["user", "admin"]
AuthProvider = Literal["google"]


@dataclass(frozen=True)
class User:
    id: str
    email: str
    password_hash: str | None
    name: str | None
    avatar_url: str | None
    email_verified: bool
    role: UserRole
    account_status: AccountStatus
    created_at: datetime
    updated_at: datetime
    last_signin_at: datetime | None

    @property
    def is_active(self) -> bool:
        return self.account_status == "active"


@dataclass(frozen=True)
class OAuthIdentity:
    id: str
    user_id: str
    provider: AuthProvider
    provider_user_id: str
    created_at: datetime
