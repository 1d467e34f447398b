from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse

from stellar_auth.api.deps import (
    AuthContainer,
    get_begin_google_oauth_use_case,
    get_complete_email_verification_use_case,
    get_complete_google_oauth_use_case,
    get_complete_password_reset_use_case,
    get_container,
    get_current_user_use_case,
    get_delete_account_use_case,
    get_logout_session_use_case,
    get_purge_account_use_case,
    get_refresh_session_use_case,
    get_request_context,
    get_request_email_verification_use_case,
    get_request_password_reset_use_case,
    get_sign_in_use_case,
    get_sign_up_use_case,
    get_update_profile_use_case,
    require_access_token,
    require_admin,
)
from stellar_auth.api.errors import to_http_exception
from stellar_auth.api.schemas.auth import (
    AuthTokenResponse,
    AuthUserResponse,
    EmailRequest,
    GoogleAuthorizationResponse,
    GoogleCallbackResponse,
    LoginRequest,
    LogoutResponse,
    MessageResponse,
    PasswordResetCompleteRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    UpdateProfileRequest,
    VerifyEmailRequest,
)
from stellar_auth.application.dto.auth import (
    AuthTokensOutput,
    BeginOAuthInput,
    CompleteEmailVerificationInput,
    CompleteOAuthInput,
    CompletePasswordResetInput,
    DeleteAccountInput,
    LogoutInput,
    RefreshSessionInput,
    RequestContext,
    RequestEmailVerificationInput,
    RequestPasswordResetInput,
    SignInInput,
    SignUpInput,
    UpdateProfileInput,
)
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


router = APIRouter()

REFRESH_COOKIE_NAME = "refresh_token"
REFRESH_COOKIE_PATH = "/v1/auth"

# Same body whether or not the address is registered.
RESET_REQUESTED_MESSAGE = "If an account exists for that email, a reset link has been sent."
VERIFICATION_REQUESTED_MESSAGE = "If the account needs verification, a new link has been sent."


def _set_refresh_cookie(response: Response, session: AuthTokensOutput, *, secure: bool) -> None:
    now = datetime.now(timezone.utc)
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=session.refresh_token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max(int((session.refresh_expires_at - now).total_seconds()), 0),
        path=REFRESH_COOKIE_PATH,
    )


def _token_payload(session: AuthTokensOutput) -> dict:
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "access_expires_at": session.access_expires_at,
        "refresh_expires_at": session.refresh_expires_at,
        "user": AuthUserResponse(**asdict(session.user)),
    }


@router.post("/v1/auth/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    container: AuthContainer = Depends(get_container),
    use_case: SignUpUseCase = Depends(get_sign_up_use_case),
):
    try:
        output = use_case.execute(
            SignUpInput(email=req.email, password=req.password, name=req.name, context=context)
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _set_refresh_cookie(response, output.session, secure=container.settings.is_production)
    return RegisterResponse(
        **_token_payload(output.session),
        verification_email_sent=output.verification_email_sent,
    )


@router.post("/v1/auth/login", response_model=AuthTokenResponse)
def login(
    req: LoginRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    container: AuthContainer = Depends(get_container),
    use_case: SignInUseCase = Depends(get_sign_in_use_case),
):
    try:
        session = use_case.execute(SignInInput(email=req.email, password=req.password, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _set_refresh_cookie(response, session, secure=container.settings.is_production)
    return AuthTokenResponse(**_token_payload(session))


@router.post("/v1/auth/refresh", response_model=AuthTokenResponse)
def refresh(
    response: Response,
    req: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    context: RequestContext = Depends(get_request_context),
    container: AuthContainer = Depends(get_container),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    refresh_token = (req.refresh_token if req else None) or refresh_token_cookie
    if not refresh_token:
        raise HTTPException(status_code=401, detail="Missing refresh token.")

    try:
        session = use_case.execute(RefreshSessionInput(refresh_token=refresh_token, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _set_refresh_cookie(response, session, secure=container.settings.is_production)
    return AuthTokenResponse(**_token_payload(session))


@router.post("/v1/auth/logout", response_model=LogoutResponse)
def logout(
    response: Response,
    req: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    context: RequestContext = Depends(get_request_context),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    refresh_token = (req.refresh_token if req else None) or refresh_token_cookie
    if refresh_token:
        try:
            use_case.execute(LogoutInput(refresh_token=refresh_token, context=context))
        except DomainError as exc:
            raise to_http_exception(exc) from exc
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)
    return LogoutResponse(ok=True)


@router.get("/v1/auth/verify-email", response_model=AuthUserResponse)
def verify_email_link(
    token: str,
    email: str,
    use_case: CompleteEmailVerificationUseCase = Depends(get_complete_email_verification_use_case),
):
    try:
        user = use_case.execute(CompleteEmailVerificationInput(email=email, token=token))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AuthUserResponse(**asdict(user))


@router.post("/v1/auth/verify-email", response_model=AuthUserResponse)
def verify_email(
    req: VerifyEmailRequest,
    use_case: CompleteEmailVerificationUseCase = Depends(get_complete_email_verification_use_case),
):
    try:
        user = use_case.execute(CompleteEmailVerificationInput(email=req.email, token=req.token))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AuthUserResponse(**asdict(user))


@router.post(
    "/v1/auth/resend-verification",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def resend_verification(
    req: EmailRequest,
    use_case: RequestEmailVerificationUseCase = Depends(get_request_email_verification_use_case),
):
    try:
        use_case.execute(RequestEmailVerificationInput(email=req.email))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(message=VERIFICATION_REQUESTED_MESSAGE)


@router.post(
    "/v1/auth/password-reset/request",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def request_password_reset(
    req: EmailRequest,
    context: RequestContext = Depends(get_request_context),
    use_case: RequestPasswordResetUseCase = Depends(get_request_password_reset_use_case),
):
    try:
        use_case.execute(RequestPasswordResetInput(email=req.email, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/v1/auth/password-reset/complete", response_model=MessageResponse)
def complete_password_reset(
    req: PasswordResetCompleteRequest,
    context: RequestContext = Depends(get_request_context),
    use_case: CompletePasswordResetUseCase = Depends(get_complete_password_reset_use_case),
):
    try:
        use_case.execute(
            CompletePasswordResetInput(
                email=req.email,
                token=req.token,
                new_password=req.new_password,
                context=context,
            )
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(message="Password has been reset.")


@router.get("/v1/auth/google", response_model=GoogleAuthorizationResponse)
def begin_google_oauth(
    redirect_to: str | None = None,
    context: RequestContext = Depends(get_request_context),
    use_case: BeginGoogleOAuthUseCase = Depends(get_begin_google_oauth_use_case),
):
    try:
        output = use_case.execute(BeginOAuthInput(redirect_to=redirect_to, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return GoogleAuthorizationResponse(authorization_url=output.authorization_url, state=output.state)


@router.get("/v1/auth/google/callback", response_model=GoogleCallbackResponse)
def google_oauth_callback(
    response: Response,
    state: str,
    code: str | None = None,
    error: str | None = None,
    context: RequestContext = Depends(get_request_context),
    container: AuthContainer = Depends(get_container),
    use_case: CompleteGoogleOAuthUseCase = Depends(get_complete_google_oauth_use_case),
):
    if error:
        container.audit_port.record("GOOGLE_OAUTH_FAILED", {"reason": error, "ip": context.ip})
        raise HTTPException(status_code=401, detail="Google sign-in was cancelled or failed.")

    try:
        output = use_case.execute(CompleteOAuthInput(code=code or "", state=state, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    secure = container.settings.is_production
    if output.redirect_to:
        # The access token travels in the fragment so it never reaches server logs.
        fragment = urlencode({"access_token": output.session.access_token, "created": str(output.created).lower()})
        redirect = RedirectResponse(url=f"{output.redirect_to}#{fragment}", status_code=status.HTTP_302_FOUND)
        _set_refresh_cookie(redirect, output.session, secure=secure)
        return redirect

    _set_refresh_cookie(response, output.session, secure=secure)
    return GoogleCallbackResponse(
        **_token_payload(output.session),
        created=output.created,
        redirect_to=None,
    )


@router.get("/v1/auth/me", response_model=AuthUserResponse)
def me(
    claims: AccessClaims = Depends(require_access_token),
    use_case: GetCurrentUserUseCase = Depends(get_current_user_use_case),
):
    try:
        user = use_case.execute(user_id=claims.subject)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AuthUserResponse(**asdict(user))


@router.patch("/v1/auth/me", response_model=AuthUserResponse)
def update_me(
    req: UpdateProfileRequest,
    claims: AccessClaims = Depends(require_access_token),
    use_case: UpdateProfileUseCase = Depends(get_update_profile_use_case),
):
    try:
        user = use_case.execute(
            UpdateProfileInput(user_id=claims.subject, updates=req.model_dump(exclude_unset=True))
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AuthUserResponse(**asdict(user))


@router.delete("/v1/auth/account", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    claims: AccessClaims = Depends(require_access_token),
    context: RequestContext = Depends(get_request_context),
    use_case: DeleteAccountUseCase = Depends(get_delete_account_use_case),
):
    try:
        use_case.execute(DeleteAccountInput(user_id=claims.subject, context=context))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)
    return response


@router.delete("/v1/admin/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def purge_user(
    user_id: str,
    claims: AccessClaims = Depends(require_admin),
    use_case: PurgeAccountUseCase = Depends(get_purge_account_use_case),
):
    try:
        use_case.execute(user_id=user_id, actor_id=claims.subject)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
