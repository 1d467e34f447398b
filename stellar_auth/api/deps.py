from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Header, HTTPException, Request

from stellar_auth.api.errors import to_http_exception
from stellar_auth.application.dto.auth import RequestContext
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.application.ports.google_oauth_port import GoogleOauthPort
from stellar_auth.application.ports.notifier_port import NotifierPort
from stellar_auth.application.ports.refresh_token_ledger_port import RefreshTokenLedgerPort
from stellar_auth.application.services.email_tokens import EmailTokenService
from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker
from stellar_auth.application.services.oauth_state_store import OAuthStateStore
from stellar_auth.application.services.one_time_token_store import OneTimeTokenStore
from stellar_auth.application.services.session_issuer import SessionIssuer
from stellar_auth.application.use_cases.authenticate_access_token import AuthenticateAccessTokenUseCase
from stellar_auth.application.use_cases.begin_google_oauth import BeginGoogleOAuthUseCase
from stellar_auth.application.use_cases.complete_email_verification import CompleteEmailVerificationUseCase
from stellar_auth.application.use_cases.complete_google_oauth import CompleteGoogleOAuthUseCase
from stellar_auth.application.use_cases.complete_password_reset import CompletePasswordResetUseCase
from stellar_auth.application.use_cases.delete_account import DeleteAccountUseCase, PurgeAccountUseCase
from stellar_auth.application.use_cases.get_current_user import GetCurrentUserUseCase
from stellar_auth.application.use_cases.logout_session import LogoutSessionUseCase
from stellar_auth.application.use_cases.refresh_session import RefreshSessionUseCase
from stellar_auth.application.use_cases.request_email_verification import RequestEmailVerificationUseCase
from stellar_auth.application.use_cases.request_password_reset import RequestPasswordResetUseCase
from stellar_auth.application.use_cases.sign_in import SignInUseCase
from stellar_auth.application.use_cases.sign_up import SignUpUseCase
from stellar_auth.application.use_cases.update_profile import UpdateProfileUseCase
from stellar_auth.domain.entities.token_claims import AccessClaims
from stellar_auth.domain.exceptions import DomainError
from stellar_auth.infrastructure.clients.brevo_email_client import BrevoEmailClient, LoggingNotifier
from stellar_auth.infrastructure.clients.google_oauth_client import GoogleOAuthClient
from stellar_auth.infrastructure.db.engine import create_schema, get_engine
from stellar_auth.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from stellar_auth.infrastructure.db.repositories.audit_repository import SqlAuditSink
from stellar_auth.infrastructure.db.repositories.login_attempt_repository import SqlLoginAttemptRepository
from stellar_auth.infrastructure.db.repositories.one_time_token_repository import SqlOneTimeTokenRepository
from stellar_auth.infrastructure.db.repositories.refresh_token_ledger_repository import SqlRefreshTokenLedger
from stellar_auth.infrastructure.security.password_hasher import PasswordHasher
from stellar_auth.infrastructure.security.token_service import JwtTokenService
from stellar_auth.shared.config import Settings


logger = logging.getLogger(__name__)


@dataclass
class AuthContainer:
    settings: Settings
    token_service: JwtTokenService
    refresh_ledger: RefreshTokenLedgerPort
    audit_port: AuditPort
    login_attempts: LoginAttemptTracker
    state_store: OAuthStateStore
    sign_up: SignUpUseCase
    sign_in: SignInUseCase
    refresh_session: RefreshSessionUseCase
    logout_session: LogoutSessionUseCase
    request_password_reset: RequestPasswordResetUseCase
    complete_password_reset: CompletePasswordResetUseCase
    request_email_verification: RequestEmailVerificationUseCase
    complete_email_verification: CompleteEmailVerificationUseCase
    begin_google_oauth: BeginGoogleOAuthUseCase
    complete_google_oauth: CompleteGoogleOAuthUseCase
    delete_account: DeleteAccountUseCase
    purge_account: PurgeAccountUseCase
    get_current_user: GetCurrentUserUseCase
    update_profile: UpdateProfileUseCase
    authenticate_access_token: AuthenticateAccessTokenUseCase


def _build_notifier(settings: Settings) -> NotifierPort:
    if settings.brevo_api_key:
        return BrevoEmailClient(
            api_key=settings.brevo_api_key,
            sender_name=settings.email_sender_name,
            sender_address=settings.email_sender_address,
            public_base_url=settings.public_base_url,
            frontend_url=settings.frontend_url,
            timeout_seconds=settings.email_timeout_seconds,
            max_retries=settings.email_max_retries,
        )
    logger.warning("deps: brevo_api_key_missing notifier=logging")
    return LoggingNotifier(public_base_url=settings.public_base_url, frontend_url=settings.frontend_url)


def build_container(
    settings: Settings,
    *,
    engine=None,
    notifier: NotifierPort | None = None,
    google_oauth: GoogleOauthPort | None = None,
) -> AuthContainer:
    engine = engine if engine is not None else get_engine(settings.database_url)
    create_schema(engine)

    token_service = JwtTokenService(
        jwt_secret=settings.jwt_secret,
        verify_secret=settings.jwt_verify_secret,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        access_ttl_minutes=settings.access_token_ttl_minutes,
        refresh_ttl_days=settings.refresh_token_ttl_days,
        verification_ttl_hours=settings.verification_token_ttl_hours,
        reset_ttl_minutes=settings.reset_token_ttl_minutes,
        clock_skew_seconds=settings.token_clock_skew_seconds,
        strict_binding=settings.token_binding_strict,
    )
    accounts = SqlAccountsRepository(engine)
    refresh_ledger = SqlRefreshTokenLedger(engine)
    audit_port = SqlAuditSink(engine)
    password_hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    notifier = notifier if notifier is not None else _build_notifier(settings)
    google_oauth = google_oauth if google_oauth is not None else GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
    )

    login_attempts = LoginAttemptTracker(
        attempt_port=SqlLoginAttemptRepository(engine),
        audit_port=audit_port,
        max_attempts=settings.lockout_max_attempts,
        lockout_duration=timedelta(minutes=settings.lockout_duration_minutes),
        reset_window=timedelta(minutes=settings.lockout_reset_window_minutes),
    )
    state_store = OAuthStateStore(ttl=timedelta(minutes=settings.oauth_state_ttl_minutes))
    session_issuer = SessionIssuer(account_port=accounts, token_port=token_service)
    email_tokens = EmailTokenService(
        store=OneTimeTokenStore(token_port=SqlOneTimeTokenRepository(engine)),
        token_port=token_service,
    )

    return AuthContainer(
        settings=settings,
        token_service=token_service,
        refresh_ledger=refresh_ledger,
        audit_port=audit_port,
        login_attempts=login_attempts,
        state_store=state_store,
        sign_up=SignUpUseCase(
            account_port=accounts,
            password_hasher=password_hasher,
            session_issuer=session_issuer,
            email_tokens=email_tokens,
            notifier=notifier,
            audit_port=audit_port,
        ),
        sign_in=SignInUseCase(
            account_port=accounts,
            password_hasher=password_hasher,
            session_issuer=session_issuer,
            login_attempts=login_attempts,
            audit_port=audit_port,
            require_verified_email=settings.require_verified_email,
        ),
        refresh_session=RefreshSessionUseCase(
            account_port=accounts,
            token_port=token_service,
            refresh_ledger=refresh_ledger,
            session_issuer=session_issuer,
            audit_port=audit_port,
        ),
        logout_session=LogoutSessionUseCase(token_port=token_service, refresh_ledger=refresh_ledger),
        request_password_reset=RequestPasswordResetUseCase(
            account_port=accounts,
            email_tokens=email_tokens,
            notifier=notifier,
            audit_port=audit_port,
        ),
        complete_password_reset=CompletePasswordResetUseCase(
            account_port=accounts,
            password_hasher=password_hasher,
            email_tokens=email_tokens,
            login_attempts=login_attempts,
            audit_port=audit_port,
        ),
        request_email_verification=RequestEmailVerificationUseCase(
            account_port=accounts,
            email_tokens=email_tokens,
            notifier=notifier,
        ),
        complete_email_verification=CompleteEmailVerificationUseCase(
            account_port=accounts,
            email_tokens=email_tokens,
            notifier=notifier,
            audit_port=audit_port,
        ),
        begin_google_oauth=BeginGoogleOAuthUseCase(
            google_oauth_port=google_oauth,
            state_store=state_store,
            audit_port=audit_port,
            allowed_redirect_origins=settings.allowed_redirect_origins,
        ),
        complete_google_oauth=CompleteGoogleOAuthUseCase(
            account_port=accounts,
            google_oauth_port=google_oauth,
            state_store=state_store,
            session_issuer=session_issuer,
            notifier=notifier,
            audit_port=audit_port,
        ),
        delete_account=DeleteAccountUseCase(account_port=accounts, audit_port=audit_port),
        purge_account=PurgeAccountUseCase(account_port=accounts, audit_port=audit_port),
        get_current_user=GetCurrentUserUseCase(account_port=accounts),
        update_profile=UpdateProfileUseCase(account_port=accounts),
        authenticate_access_token=AuthenticateAccessTokenUseCase(token_port=token_service, audit_port=audit_port),
    )


def get_container(request: Request) -> AuthContainer:
    return request.app.state.container


def get_request_context(
    request: Request,
    user_agent: str | None = Header(default=None),
) -> RequestContext:
    # Forwarded headers are applied to request.client by ProxyHeadersMiddleware,
    # and only for peers listed in TRUSTED_PROXIES.
    ip = request.client.host if request.client is not None else None
    return RequestContext(user_agent=user_agent, ip=ip)


def get_sign_up_use_case(container: AuthContainer = Depends(get_container)) -> SignUpUseCase:
    return container.sign_up


def get_sign_in_use_case(container: AuthContainer = Depends(get_container)) -> SignInUseCase:
    return container.sign_in


def get_refresh_session_use_case(container: AuthContainer = Depends(get_container)) -> RefreshSessionUseCase:
    return container.refresh_session


def get_logout_session_use_case(container: AuthContainer = Depends(get_container)) -> LogoutSessionUseCase:
    return container.logout_session


def get_request_password_reset_use_case(
    container: AuthContainer = Depends(get_container),
) -> RequestPasswordResetUseCase:
    return container.request_password_reset


def get_complete_password_reset_use_case(
    container: AuthContainer = Depends(get_container),
) -> CompletePasswordResetUseCase:
    return container.complete_password_reset


def get_request_email_verification_use_case(
    container: AuthContainer = Depends(get_container),
) -> RequestEmailVerificationUseCase:
    return container.request_email_verification


def get_complete_email_verification_use_case(
    container: AuthContainer = Depends(get_container),
) -> CompleteEmailVerificationUseCase:
    return container.complete_email_verification


def get_begin_google_oauth_use_case(container: AuthContainer = Depends(get_container)) -> BeginGoogleOAuthUseCase:
    return container.begin_google_oauth


def get_complete_google_oauth_use_case(
    container: AuthContainer = Depends(get_container),
) -> CompleteGoogleOAuthUseCase:
    return container.complete_google_oauth


def get_delete_account_use_case(container: AuthContainer = Depends(get_container)) -> DeleteAccountUseCase:
    return container.delete_account


def get_purge_account_use_case(container: AuthContainer = Depends(get_container)) -> PurgeAccountUseCase:
    return container.purge_account


def get_current_user_use_case(container: AuthContainer = Depends(get_container)) -> GetCurrentUserUseCase:
    return container.get_current_user


def get_update_profile_use_case(container: AuthContainer = Depends(get_container)) -> UpdateProfileUseCase:
    return container.update_profile


def require_access_token(
    authorization: str | None = Header(default=None),
    context: RequestContext = Depends(get_request_context),
    container: AuthContainer = Depends(get_container),
) -> AccessClaims:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token.")

    try:
        return container.authenticate_access_token.execute(token=token, context=context)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


def require_role(role: str):
    def dependency(claims: AccessClaims = Depends(require_access_token)) -> AccessClaims:
        if claims.role != role:
            raise HTTPException(status_code=403, detail="Insufficient permissions.")
        return claims

    return dependency


require_admin = require_role("admin")
