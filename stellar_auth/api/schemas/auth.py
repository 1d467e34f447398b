from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=256)
    name: str | None = Field(default=None, max_length=120)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=256)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)


class VerifyEmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    token: str = Field(..., min_length=1)


class PasswordResetCompleteRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=256)


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(default=None, max_length=120)
    avatar_url: str | None = Field(default=None, max_length=2048)


class AuthUserResponse(BaseModel):
    id: str
    email: str
    name: str | None
    avatar_url: str | None
    email_verified: bool
    role: str
    created_at: datetime
    last_signin_at: datetime | None


class AuthTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    access_expires_at: datetime
    refresh_expires_at: datetime
    user: AuthUserResponse


class RegisterResponse(AuthTokenResponse):
    verification_email_sent: bool


class GoogleAuthorizationResponse(BaseModel):
    authorization_url: str
    state: str


class GoogleCallbackResponse(AuthTokenResponse):
    created: bool
    redirect_to: str | None


class MessageResponse(BaseModel):
    message: str


class LogoutResponse(BaseModel):
    ok: bool
