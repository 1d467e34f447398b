from __future__ import annotations

from datetime import timedelta

import pytest

from stellar_auth.application.dto.auth import (
    CompleteEmailVerificationInput,
    CompletePasswordResetInput,
    DeleteAccountInput,
    LogoutInput,
    RefreshSessionInput,
    RequestContext,
    RequestEmailVerificationInput,
    RequestPasswordResetInput,
    SignInInput,
    SignUpInput,
)
from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.application.use_cases.authenticate_access_token import AuthenticateAccessTokenUseCase
from stellar_auth.application.use_cases.complete_email_verification import CompleteEmailVerificationUseCase
from stellar_auth.application.use_cases.complete_password_reset import CompletePasswordResetUseCase
from stellar_auth.application.use_cases.delete_account import DeleteAccountUseCase, PurgeAccountUseCase
from stellar_auth.application.use_cases.get_current_user import GetCurrentUserUseCase
from stellar_auth.application.use_cases.logout_session import LogoutSessionUseCase
from stellar_auth.application.use_cases.refresh_session import RefreshSessionUseCase
from stellar_auth.application.use_cases.request_email_verification import RequestEmailVerificationUseCase
from stellar_auth.application.use_cases.request_password_reset import RequestPasswordResetUseCase
from stellar_auth.application.use_cases.sign_in import SignInUseCase
from stellar_auth.application.use_cases.sign_up import SignUpUseCase
from stellar_auth.domain.exceptions import (
    AccountAlreadyExistsError,
    AccountLockedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    RefreshSessionInvalidError,
    RefreshTokenReusedError,
    TokenAlreadyUsedError,
    TokenContextMismatchError,
    TokenMalformedError,
    TokenTypeMismatchError,
    UserNotFoundError,
    ValidationError,
)
from tests.fakes import STRONG_PASSWORD, make_token_service


@pytest.fixture
def sign_up(account_port, password_hasher, session_issuer, email_tokens, notifier, audit_port):
    return SignUpUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        session_issuer=session_issuer,
        email_tokens=email_tokens,
        notifier=notifier,
        audit_port=audit_port,
    )


@pytest.fixture
def sign_in(account_port, password_hasher, session_issuer, login_attempts, audit_port):
    return SignInUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        session_issuer=session_issuer,
        login_attempts=login_attempts,
        audit_port=audit_port,
    )


@pytest.fixture
def refresh(account_port, token_service, refresh_ledger, session_issuer, audit_port):
    return RefreshSessionUseCase(
        account_port=account_port,
        token_port=token_service,
        refresh_ledger=refresh_ledger,
        session_issuer=session_issuer,
        audit_port=audit_port,
    )


def test_sign_up_then_sign_in_with_differently_cased_email(sign_up, sign_in, context, audit_port):
    output = sign_up.execute(
        SignUpInput(email="  Alice@Example.COM ", password=STRONG_PASSWORD, name="Alice", context=context)
    )

    assert output.session.user.email == "alice@example.com"
    assert output.session.user.email_verified is False
    assert output.verification_email_sent is True
    assert "ACCOUNT_CREATED" in audit_port.kinds()

    session = sign_in.execute(SignInInput(email="ALICE@example.com", password=STRONG_PASSWORD, context=context))

    assert session.user.id == output.session.user.id
    assert session.access_token
    assert session.refresh_token
    assert session.user.last_signin_at is not None
    assert "LOGIN_SUCCESS" in audit_port.kinds()


def test_sign_up_rejects_duplicate_email_regardless_of_case(sign_up, context):
    sign_up.execute(SignUpInput(email="alice@example.com", password=STRONG_PASSWORD, name=None, context=context))

    with pytest.raises(AccountAlreadyExistsError):
        sign_up.execute(
            SignUpInput(email="ALICE@EXAMPLE.COM", password=STRONG_PASSWORD, name=None, context=context)
        )


@pytest.mark.parametrize(
    "email,password",
    [
        ("not-an-email", STRONG_PASSWORD),
        ("alice..x@example.com", STRONG_PASSWORD),
        ("alice@example.com", "short1!"),
        ("alice@example.com", "alllowercase1!"),
        ("alice@example.com", "NoDigitsHere!"),
    ],
)
def test_sign_up_validates_input(sign_up, context, account_port, email, password):
    with pytest.raises(ValidationError):
        sign_up.execute(SignUpInput(email=email, password=password, name=None, context=context))
    assert account_port.users == {}


def test_sign_up_survives_email_outage(sign_up, notifier, context):
    notifier.fail = True

    output = sign_up.execute(
        SignUpInput(email="alice@example.com", password=STRONG_PASSWORD, name=None, context=context)
    )

    assert output.verification_email_sent is False
    assert output.session.access_token


def test_sixth_attempt_is_locked_even_with_correct_password(sign_in, account_port, context, clock):
    account_port.add_user()
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            sign_in.execute(SignInInput(email="alice@example.com", password="Wr0ng!pass", context=context))

    with pytest.raises(AccountLockedError) as exc_info:
        sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    assert exc_info.value.remaining_minutes == 15

    clock.advance(minutes=15, seconds=1)
    session = sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    assert session.user.email == "alice@example.com"


def test_successful_sign_in_clears_failed_attempts(sign_in, login_attempts, account_port, context):
    account_port.add_user()
    for _ in range(3):
        with pytest.raises(InvalidCredentialsError):
            sign_in.execute(SignInInput(email="alice@example.com", password="Wr0ng!pass", context=context))

    sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))

    assert login_attempts.record_failed_attempt("alice@example.com").count == 1


def test_unknown_email_costs_a_hash_and_counts_as_failure(sign_in, password_hasher, login_attempts, context):
    with pytest.raises(InvalidCredentialsError) as exc_info:
        sign_in.execute(SignInInput(email="ghost@example.com", password=STRONG_PASSWORD, context=context))

    assert str(exc_info.value) == "Invalid email or password."
    assert password_hasher.verify_calls == 1
    assert login_attempts.is_locked("ghost@example.com").attempts == 1


def test_oauth_only_account_cannot_sign_in_with_password(sign_in, account_port, context):
    account_port.add_user(password_hash=None)

    with pytest.raises(InvalidCredentialsError):
        sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))


def test_verified_email_can_be_required(account_port, password_hasher, session_issuer, login_attempts, audit_port, context):
    account_port.add_user(email_verified=False)
    use_case = SignInUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        session_issuer=session_issuer,
        login_attempts=login_attempts,
        audit_port=audit_port,
        require_verified_email=True,
    )

    with pytest.raises(EmailNotVerifiedError):
        use_case.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))


def test_refresh_rotates_and_rejects_reuse(sign_in, refresh, account_port, audit_port, context):
    account_port.add_user()
    first = sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))

    second = refresh.execute(RefreshSessionInput(refresh_token=first.refresh_token, context=context))
    assert second.refresh_token != first.refresh_token

    with pytest.raises(RefreshTokenReusedError):
        refresh.execute(RefreshSessionInput(refresh_token=first.refresh_token, context=context))
    assert "REFRESH_TOKEN_REUSED" in audit_port.kinds()

    third = refresh.execute(RefreshSessionInput(refresh_token=second.refresh_token, context=context))
    assert third.user.id == "user-1"


def test_refresh_rejects_access_token(sign_in, refresh, account_port, context):
    account_port.add_user()
    session = sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))

    with pytest.raises(TokenTypeMismatchError):
        refresh.execute(RefreshSessionInput(refresh_token=session.access_token, context=context))


def test_refresh_from_another_client_is_audited_in_strict_mode(
    account_port, refresh_ledger, audit_port, context
):
    strict_tokens = make_token_service(strict_binding=True)
    issuer = SessionIssuer(account_port=account_port, token_port=strict_tokens)
    use_case = RefreshSessionUseCase(
        account_port=account_port,
        token_port=strict_tokens,
        refresh_ledger=refresh_ledger,
        session_issuer=issuer,
        audit_port=audit_port,
    )
    user = account_port.add_user()
    session = issuer.issue(user=user, context=context)

    with pytest.raises(TokenContextMismatchError):
        use_case.execute(
            RefreshSessionInput(
                refresh_token=session.refresh_token,
                context=RequestContext(user_agent="stolen", ip="198.51.100.9"),
            )
        )
    assert "TOKEN_CONTEXT_MISMATCH" in audit_port.kinds()


def test_logout_spends_the_refresh_token(sign_in, refresh, token_service, refresh_ledger, account_port, context):
    account_port.add_user()
    session = sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    logout = LogoutSessionUseCase(token_port=token_service, refresh_ledger=refresh_ledger)

    assert logout.execute(LogoutInput(refresh_token=session.refresh_token, context=context)) is True
    assert logout.execute(LogoutInput(refresh_token="garbage", context=context)) is False
    with pytest.raises(RefreshTokenReusedError):
        refresh.execute(RefreshSessionInput(refresh_token=session.refresh_token, context=context))


def test_password_reset_flow(
    account_port, password_hasher, email_tokens, notifier, audit_port, login_attempts, sign_in, context
):
    account_port.add_user()
    request = RequestPasswordResetUseCase(
        account_port=account_port,
        email_tokens=email_tokens,
        notifier=notifier,
        audit_port=audit_port,
    )
    complete = CompletePasswordResetUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        email_tokens=email_tokens,
        login_attempts=login_attempts,
        audit_port=audit_port,
    )

    request.execute(RequestPasswordResetInput(email="Alice@Example.com", context=context))
    [(sent_to, token)] = notifier.password_reset
    assert sent_to == "alice@example.com"

    new_password = "N3w&Improved!"
    complete.execute(
        CompletePasswordResetInput(email="alice@example.com", token=token, new_password=new_password, context=context)
    )

    assert account_port.users["user-1"].password_hash == f"hashed:{new_password}"
    assert "PASSWORD_RESET_COMPLETED" in audit_port.kinds()
    sign_in.execute(SignInInput(email="alice@example.com", password=new_password, context=context))

    with pytest.raises(TokenAlreadyUsedError):
        complete.execute(
            CompletePasswordResetInput(
                email="alice@example.com", token=token, new_password="An0ther&One!", context=context
            )
        )


def test_password_reset_token_is_bound_to_the_email(
    account_port, password_hasher, email_tokens, notifier, audit_port, login_attempts, context
):
    user = account_port.add_user()
    token = email_tokens.issue(user=user, purpose="password_reset")
    complete = CompletePasswordResetUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        email_tokens=email_tokens,
        login_attempts=login_attempts,
        audit_port=audit_port,
    )

    with pytest.raises(TokenMalformedError):
        complete.execute(
            CompletePasswordResetInput(
                email="mallory@example.com", token=token, new_password="N3w&Improved!", context=context
            )
        )
    assert account_port.users["user-1"].password_hash == f"hashed:{STRONG_PASSWORD}"


def test_password_reset_request_is_silent_for_unknown_email(account_port, email_tokens, notifier, audit_port, context):
    request = RequestPasswordResetUseCase(
        account_port=account_port,
        email_tokens=email_tokens,
        notifier=notifier,
        audit_port=audit_port,
    )

    request.execute(RequestPasswordResetInput(email="ghost@example.com", context=context))

    assert notifier.password_reset == []
    assert audit_port.events == []


def test_email_verification_flow(sign_up, account_port, email_tokens, notifier, audit_port, context):
    output = sign_up.execute(
        SignUpInput(email="alice@example.com", password=STRONG_PASSWORD, name="Alice", context=context)
    )
    [(_, token)] = notifier.verification
    verify = CompleteEmailVerificationUseCase(
        account_port=account_port,
        email_tokens=email_tokens,
        notifier=notifier,
        audit_port=audit_port,
    )

    user = verify.execute(CompleteEmailVerificationInput(email="ALICE@example.com", token=token))

    assert user.id == output.session.user.id
    assert user.email_verified is True
    assert account_port.users[user.id].email_verified is True
    assert notifier.welcome == ["alice@example.com"]
    assert "EMAIL_VERIFIED" in audit_port.kinds()
    with pytest.raises(TokenAlreadyUsedError):
        verify.execute(CompleteEmailVerificationInput(email="alice@example.com", token=token))


def test_resend_verification_skips_verified_accounts(account_port, email_tokens, notifier):
    account_port.add_user(email_verified=True)
    account_port.add_user(id="user-2", email="bob@example.com", email_verified=False)
    resend = RequestEmailVerificationUseCase(account_port=account_port, email_tokens=email_tokens, notifier=notifier)

    resend.execute(RequestEmailVerificationInput(email="alice@example.com"))
    resend.execute(RequestEmailVerificationInput(email="ghost@example.com"))
    resend.execute(RequestEmailVerificationInput(email="bob@example.com"))

    assert [email for email, _ in notifier.verification] == ["bob@example.com"]


def test_delete_account_blocks_sign_in_and_refresh(sign_in, refresh, account_port, audit_port, context):
    account_port.add_user()
    session = sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    delete = DeleteAccountUseCase(account_port=account_port, audit_port=audit_port)

    delete.execute(DeleteAccountInput(user_id="user-1", context=context))

    assert "ACCOUNT_DELETED" in audit_port.kinds()
    with pytest.raises(InvalidCredentialsError):
        sign_in.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    with pytest.raises(RefreshSessionInvalidError):
        refresh.execute(RefreshSessionInput(refresh_token=session.refresh_token, context=context))
    with pytest.raises(UserNotFoundError):
        delete.execute(DeleteAccountInput(user_id="user-1", context=context))
    with pytest.raises(UserNotFoundError):
        GetCurrentUserUseCase(account_port=account_port).execute(user_id="user-1")


def test_purge_removes_the_account(account_port, audit_port):
    account_port.add_user()
    purge = PurgeAccountUseCase(account_port=account_port, audit_port=audit_port)

    purge.execute(user_id="user-1", actor_id="admin-1")

    assert account_port.users == {}
    with pytest.raises(UserNotFoundError):
        purge.execute(user_id="user-1", actor_id="admin-1")


def test_access_token_authentication(session_issuer, token_service, account_port, audit_port, context):
    user = account_port.add_user(role="admin")
    session = session_issuer.issue(user=user, context=context)
    authenticate = AuthenticateAccessTokenUseCase(token_port=token_service, audit_port=audit_port)

    claims = authenticate.execute(token=session.access_token, context=context)

    assert claims.subject == "user-1"
    assert claims.role == "admin"


def test_lockout_is_tracked_per_email(account_port, password_hasher, session_issuer, attempt_port, audit_port, clock, context):
    account_port.add_user()
    account_port.add_user(id="user-2", email="bob@example.com")
    tracker = LoginAttemptTracker(
        attempt_port=attempt_port,
        audit_port=audit_port,
        max_attempts=2,
        lockout_duration=timedelta(minutes=5),
        clock=clock,
    )
    use_case = SignInUseCase(
        account_port=account_port,
        password_hasher=password_hasher,
        session_issuer=session_issuer,
        login_attempts=tracker,
        audit_port=audit_port,
    )
    for _ in range(2):
        with pytest.raises(InvalidCredentialsError):
            use_case.execute(SignInInput(email="alice@example.com", password="Wr0ng!pass", context=context))

    with pytest.raises(AccountLockedError):
        use_case.execute(SignInInput(email="alice@example.com", password=STRONG_PASSWORD, context=context))
    assert use_case.execute(SignInInput(email="bob@example.com", password=STRONG_PASSWORD, context=context))
