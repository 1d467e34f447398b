from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.domain.entities.user import AuthProvider, OAuthIdentity, User
from stellar_auth.domain.exceptions import AccountAlreadyExistsError, ConflictError, DependencyError
from stellar_auth.infrastructure.db.errors import translate_db_errors
from stellar_auth.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_oauth_identity,
    map_row_to_user,
)
from stellar_auth.infrastructure.db.models.accounts import OAuthIdentityModel, UserModel


users = UserModel.__table__
oauth_identities = OAuthIdentityModel.__table__


class SqlAccountsRepository(AccountPort):
    def __init__(self, engine):
        self._engine = engine

    def get_user_by_id(self, *, user_id: str) -> User | None:
        stmt = select(users).where(users.c.id == user_id, users.c.deleted_at.is_(None)).limit(1)
        return self._fetch_user(stmt)

    def get_user_by_email(self, *, email: str) -> User | None:
        stmt = (
            select(users)
            .where(users.c.email == email.strip().casefold(), users.c.deleted_at.is_(None))
            .limit(1)
        )
        return self._fetch_user(stmt)

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
        values = {
            "id": user_id,
            "email": email.strip().casefold(),
            "password_hash": password_hash,
            "name": name,
            "avatar_url": None,
            "role": "user",
            "email_verified": email_verified,
            "email_verified_at": created_at if email_verified else None,
            "account_status": "active",
            "created_at": created_at,
            "updated_at": created_at,
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(users).values(**values))
        except IntegrityError as exc:
            raise AccountAlreadyExistsError("Unable to create account.") from exc
        except SQLAlchemyError as exc:
            raise DependencyError("Account storage is unavailable.") from exc
        return User(
            id=user_id,
            email=values["email"],
            password_hash=password_hash,
            name=name,
            avatar_url=None,
            email_verified=email_verified,
            role="user",
            account_status="active",
            created_at=created_at,
            updated_at=created_at,
            last_signin_at=None,
        )

    def set_email_verified(self, *, user_id: str, verified_at: datetime) -> None:
        self._update_user(
            user_id,
            email_verified=True,
            email_verified_at=verified_at,
            updated_at=verified_at,
        )

    def update_password(self, *, user_id: str, password_hash: str, updated_at: datetime) -> None:
        self._update_user(user_id, password_hash=password_hash, updated_at=updated_at)

    def update_last_signin(self, *, user_id: str, signed_in_at: datetime) -> None:
        self._update_user(user_id, last_signin_at=signed_in_at)

    def update_profile(
        self,
        *,
        user_id: str,
        name: str | None,
        avatar_url: str | None,
        updated_at: datetime,
    ) -> None:
        self._update_user(user_id, name=name, avatar_url=avatar_url, updated_at=updated_at)

    def update_profile_if_empty(
        self,
        *,
        user_id: str,
        name: str | None,
        avatar_url: str | None,
        updated_at: datetime,
    ) -> None:
        with self._guard():
            with self._engine.begin() as conn:
                if name:
                    conn.execute(
                        update(users)
                        .where(users.c.id == user_id, users.c.name.is_(None))
                        .values(name=name, updated_at=updated_at)
                    )
                if avatar_url:
                    conn.execute(
                        update(users)
                        .where(users.c.id == user_id, users.c.avatar_url.is_(None))
                        .values(avatar_url=avatar_url, updated_at=updated_at)
                    )

    def soft_delete(self, *, user_id: str, deleted_at: datetime) -> bool:
        stmt = (
            update(users)
            .where(users.c.id == user_id, users.c.deleted_at.is_(None))
            .values(
                account_status="deleted",
                # Frees the address for a future signup.
                email=f"deleted+{user_id}@invalid",
                password_hash=None,
                deleted_at=deleted_at,
                updated_at=deleted_at,
            )
        )
        with self._guard():
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
                if result.rowcount != 1:
                    return False
                conn.execute(delete(oauth_identities).where(oauth_identities.c.user_id == user_id))
        return True

    def purge(self, *, user_id: str) -> bool:
        with self._guard():
            with self._engine.begin() as conn:
                conn.execute(delete(oauth_identities).where(oauth_identities.c.user_id == user_id))
                result = conn.execute(delete(users).where(users.c.id == user_id))
        return result.rowcount == 1

    def get_oauth_identity(self, *, provider: AuthProvider, provider_user_id: str) -> OAuthIdentity | None:
        stmt = (
            select(oauth_identities)
            .where(
                oauth_identities.c.provider == provider,
                oauth_identities.c.provider_user_id == provider_user_id,
            )
            .limit(1)
        )
        with self._guard():
            with self._engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_oauth_identity(row)

    def link_oauth_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: AuthProvider,
        provider_user_id: str,
        created_at: datetime,
    ) -> OAuthIdentity:
        values = {
            "id": identity_id,
            "user_id": user_id,
            "provider": provider,
            "provider_user_id": provider_user_id,
            "created_at": created_at,
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(oauth_identities).values(**values))
        except IntegrityError as exc:
            raise ConflictError("OAuth identity is already linked.") from exc
        except SQLAlchemyError as exc:
            raise DependencyError("Account storage is unavailable.") from exc
        return map_row_to_oauth_identity(values)

    def _fetch_user(self, stmt) -> User | None:
        with self._guard():
            with self._engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def _update_user(self, user_id: str, **values) -> None:
        with self._guard():
            with self._engine.begin() as conn:
                conn.execute(update(users).where(users.c.id == user_id).values(**values))

    def _guard(self):
        return translate_db_errors("Account storage is unavailable.")
