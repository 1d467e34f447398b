from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from stellar_auth.domain.entities.login_attempt import LoginAttemptRecord
from stellar_auth.domain.entities.one_time_token import OneTimeTokenRecord
from stellar_auth.domain.exceptions import AccountAlreadyExistsError, ConflictError
from stellar_auth.infrastructure.db.engine import create_schema, get_engine
from stellar_auth.infrastructure.db.models.accounts import AuditLogModel
from stellar_auth.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from stellar_auth.infrastructure.db.repositories.audit_repository import SqlAuditSink
from stellar_auth.infrastructure.db.repositories.login_attempt_repository import SqlLoginAttemptRepository
from stellar_auth.infrastructure.db.repositories.one_time_token_repository import SqlOneTimeTokenRepository
from stellar_auth.infrastructure.db.repositories.refresh_token_ledger_repository import SqlRefreshTokenLedger


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path / 'auth.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def accounts(engine) -> SqlAccountsRepository:
    return SqlAccountsRepository(engine)


def _create(accounts, user_id="user-1", email="alice@example.com", **overrides):
    values = {
        "user_id": user_id,
        "email": email,
        "password_hash": "hash",
        "name": "Alice",
        "email_verified": False,
        "created_at": NOW,
    }
    values.update(overrides)
    return accounts.create_user(**values)


def test_create_and_lookup_user(accounts):
    _create(accounts, email="Alice@Example.com")

    user = accounts.get_user_by_email(email="ALICE@example.COM")

    assert user is not None
    assert user.id == "user-1"
    assert user.email == "alice@example.com"
    assert user.role == "user"
    assert user.is_active
    assert user.created_at == NOW
    assert user.created_at.tzinfo is not None
    assert accounts.get_user_by_id(user_id="user-1") == user


def test_duplicate_email_is_rejected_by_the_constraint(accounts):
    _create(accounts)

    with pytest.raises(AccountAlreadyExistsError):
        _create(accounts, user_id="user-2", email="ALICE@example.com")


def test_user_updates(accounts):
    _create(accounts, name=None)
    later = NOW + timedelta(minutes=5)

    accounts.set_email_verified(user_id="user-1", verified_at=later)
    accounts.update_password(user_id="user-1", password_hash="new-hash", updated_at=later)
    accounts.update_last_signin(user_id="user-1", signed_in_at=later)
    accounts.update_profile_if_empty(user_id="user-1", name="Alice", avatar_url="https://a/b.png", updated_at=later)
    accounts.update_profile_if_empty(user_id="user-1", name="Other", avatar_url=None, updated_at=later)

    user = accounts.get_user_by_id(user_id="user-1")
    assert user.email_verified is True
    assert user.password_hash == "new-hash"
    assert user.last_signin_at == later
    assert user.name == "Alice"
    assert user.avatar_url == "https://a/b.png"


def test_update_profile_overwrites_and_clears(accounts):
    _create(accounts)
    later = NOW + timedelta(minutes=5)

    accounts.update_profile(user_id="user-1", name="Alice L.", avatar_url="https://a/c.png", updated_at=later)
    accounts.update_profile(user_id="user-1", name="Alice L.", avatar_url=None, updated_at=later)

    user = accounts.get_user_by_id(user_id="user-1")
    assert user.name == "Alice L."
    assert user.avatar_url is None
    assert user.updated_at == later


def test_soft_delete_hides_user_and_frees_the_email(accounts):
    _create(accounts)

    assert accounts.soft_delete(user_id="user-1", deleted_at=NOW) is True
    assert accounts.soft_delete(user_id="user-1", deleted_at=NOW) is False
    assert accounts.get_user_by_id(user_id="user-1") is None
    assert accounts.get_user_by_email(email="alice@example.com") is None

    _create(accounts, user_id="user-2")
    assert accounts.get_user_by_email(email="alice@example.com").id == "user-2"


def test_oauth_identity_is_unique_per_provider_subject(accounts):
    _create(accounts)
    _create(accounts, user_id="user-2", email="bob@example.com")
    accounts.link_oauth_identity(
        identity_id="id-1", user_id="user-1", provider="google", provider_user_id="sub-1", created_at=NOW
    )

    identity = accounts.get_oauth_identity(provider="google", provider_user_id="sub-1")
    assert identity.user_id == "user-1"

    with pytest.raises(ConflictError):
        accounts.link_oauth_identity(
            identity_id="id-2", user_id="user-2", provider="google", provider_user_id="sub-1", created_at=NOW
        )


def test_purge_removes_user_and_dependent_rows(engine, accounts):
    _create(accounts)
    tokens = SqlOneTimeTokenRepository(engine)
    tokens.insert(
        OneTimeTokenRecord(
            id="tok-1",
            user_id="user-1",
            purpose="verification",
            token_hash="a" * 64,
            created_at=NOW,
            expires_at=NOW + timedelta(hours=24),
            used_at=None,
        )
    )
    accounts.link_oauth_identity(
        identity_id="id-1", user_id="user-1", provider="google", provider_user_id="sub-1", created_at=NOW
    )

    assert accounts.purge(user_id="user-1") is True
    assert accounts.purge(user_id="user-1") is False
    assert tokens.get_by_hash(token_hash="a" * 64) is None
    assert accounts.get_oauth_identity(provider="google", provider_user_id="sub-1") is None


def test_one_time_token_mark_used_is_compare_and_set(engine, accounts):
    _create(accounts)
    tokens = SqlOneTimeTokenRepository(engine)
    tokens.insert(
        OneTimeTokenRecord(
            id="tok-1",
            user_id="user-1",
            purpose="password_reset",
            token_hash="b" * 64,
            created_at=NOW,
            expires_at=NOW + timedelta(hours=1),
            used_at=None,
        )
    )

    record = tokens.get_by_hash(token_hash="b" * 64)
    assert record.expires_at == NOW + timedelta(hours=1)
    assert tokens.mark_used(record_id="tok-1", used_at=NOW) is True
    assert tokens.mark_used(record_id="tok-1", used_at=NOW) is False
    assert tokens.get_by_hash(token_hash="b" * 64).used_at == NOW


def test_login_attempts_upsert_and_delete(engine):
    repo = SqlLoginAttemptRepository(engine)
    record = LoginAttemptRecord(email="alice@example.com", count=1, first_attempt_at=NOW, last_attempt_at=NOW)

    repo.save(record, ip="203.0.113.7")
    repo.save(
        LoginAttemptRecord(
            email="alice@example.com",
            count=5,
            first_attempt_at=NOW,
            last_attempt_at=NOW,
            locked_until=NOW + timedelta(minutes=15),
        ),
        ip=None,
    )

    stored = repo.get(email="alice@example.com")
    assert stored.count == 5
    assert stored.locked_until == NOW + timedelta(minutes=15)

    repo.delete(email="alice@example.com")
    assert repo.get(email="alice@example.com") is None


def test_refresh_ledger_spends_each_jti_once(engine):
    ledger = SqlRefreshTokenLedger(engine)

    assert ledger.spend(jti="jti-1", user_id="user-1", expires_at=NOW, spent_at=NOW) is True
    assert ledger.spend(jti="jti-1", user_id="user-1", expires_at=NOW, spent_at=NOW) is False
    assert ledger.spend(jti="jti-2", user_id="user-1", expires_at=NOW + timedelta(days=7), spent_at=NOW) is True

    assert ledger.purge_expired(now=NOW + timedelta(seconds=1)) == 1
    assert ledger.spend(jti="jti-1", user_id="user-1", expires_at=NOW, spent_at=NOW) is True


def test_audit_sink_persists_only_critical_events(engine):
    sink = SqlAuditSink(engine, clock=lambda: NOW)

    sink.record("LOGIN_SUCCESS", {"user_id": "user-1"})
    sink.record("ACCOUNT_LOCKED", {"email": "alice@example.com", "ip": "203.0.113.7", "attempts": 5})

    with engine.connect() as conn:
        rows = conn.execute(select(AuditLogModel.__table__)).mappings().all()
    assert [row["event"] for row in rows] == ["ACCOUNT_LOCKED"]
    assert rows[0]["ip_address"] == "203.0.113.7"
    assert '"attempts": 5' in rows[0]["data"]
