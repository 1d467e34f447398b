from __future__ import annotations

from datetime import timedelta

import pytest

from stellar_auth.application.dto.auth import RequestContext
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker
from stellar_auth.application.services.oauth_state_store import OAuthStateStore
from stellar_auth.application.services.one_time_token_store import OneTimeTokenStore
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.infrastructure.security.token_service import JwtTokenService
from tests.fakes import (
    FakeAccountPort,
    FakeAuditPort,
    FakeClock,
    FakeLoginAttemptPort,
    FakeNotifier,
    FakeOneTimeTokenPort,
    FakePasswordHasher,
    FakeRefreshLedger,
    make_token_service,
)


@pytest.fixture
def context() -> RequestContext:
    return RequestContext(user_agent="pytest-agent/1.0", ip="203.0.113.7")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def account_port() -> FakeAccountPort:
    return FakeAccountPort()


@pytest.fixture
def audit_port() -> FakeAuditPort:
    return FakeAuditPort()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def password_hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def token_service() -> JwtTokenService:
    return make_token_service()


@pytest.fixture
def one_time_port() -> FakeOneTimeTokenPort:
    return FakeOneTimeTokenPort()


@pytest.fixture
def refresh_ledger() -> FakeRefreshLedger:
    return FakeRefreshLedger()


@pytest.fixture
def attempt_port() -> FakeLoginAttemptPort:
    return FakeLoginAttemptPort()


@pytest.fixture
def login_attempts(attempt_port, audit_port, clock) -> LoginAttemptTracker:
    return LoginAttemptTracker(attempt_port=attempt_port, audit_port=audit_port, clock=clock)


@pytest.fixture
def one_time_store(one_time_port) -> OneTimeTokenStore:
    return OneTimeTokenStore(token_port=one_time_port)


@pytest.fixture
def email_tokens(one_time_store, token_service) -> EmailTokenService:
    return EmailTokenService(store=one_time_store, token_port=token_service)


@pytest.fixture
def session_issuer(account_port, token_service) -> SessionIssuer:
    return SessionIssuer(account_port=account_port, token_port=token_service)


@pytest.fixture
def state_store(clock) -> OAuthStateStore:
    return OAuthStateStore(ttl=timedelta(minutes=10), clock=clock)
