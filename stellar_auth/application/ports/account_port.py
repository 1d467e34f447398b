from __future__ import annotations

from datetime import datetime
from typing import Protocol

from stellar_auth.domain.entities.user import AuthProvider, OAuthIdentity, User


class AccountPort(Protocol):
    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        email: str,
        password_hash: str | None,
        name: str | None,
        email_verified: bool,
        created_at: datetime,
    ) -> User:
        """Insert a user; raises AccountAlreadyExistsError on a duplicate email."""
        ...

    def set_email_verified(self, *, user_id: str, verified_at: datetime) -> None:
        ...

    def update_password(self, *, user_id: str, password_hash: str, updated_at: datetime) -> None:
        ...

    def update_last_signin(self, *, user_id: str, signed_in_at: datetime) -> None:
        ...

    def update_profile_if_empty(
        self,
        *,
        user_id: str,
        name: str | None,
        avatar_url: str | None,
        updated_at: datetime,
    ) -> None:
        ...

    def update_profile(
        self,
        *,
        user_id: str,
        name: str | None,
        avatar_url: str | None,
        updated_at: datetime,
    ) -> None:
        """Overwrite both profile fields; ``None`` clears a field."""
        ...

    def soft_delete(self, *, user_id: str, deleted_at: datetime) -> bool:
        ...

    def purge(self, *, user_id: str) -> bool:
        ...

    def get_oauth_identity(self, *, provider: AuthProvider, provider_user_id: str) -> OAuthIdentity | None:
        ...

    def link_oauth_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: AuthProvider,
        provider_user_id: str,
        created_at: datetime,
    ) -> OAuthIdentity:
        ...
