from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from stellar_auth.domain.exceptions import ConfigurationError, ValidationError
from stellar_auth.domain.services.redirects import url_origin


load_dotenv()

MIN_SECRET_LENGTH = 32


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _csv(name: str, default: str = "") -> tuple[str, ...]:
    return tuple(item.strip() for item in (_env(name, default) or "").split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    environment: str
    database_url: str
    jwt_secret: str
    jwt_verify_secret: str
    jwt_issuer: str
    jwt_audience: str
    access_token_ttl_minutes: int
    refresh_token_ttl_days: int
    verification_token_ttl_hours: int
    reset_token_ttl_minutes: int
    token_clock_skew_seconds: int
    token_binding_strict: bool
    lockout_max_attempts: int
    lockout_duration_minutes: int
    lockout_reset_window_minutes: int
    password_hash_rounds: int
    require_verified_email: bool
    oauth_state_ttl_minutes: int
    oauth_state_sweep_seconds: int
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    public_base_url: str
    frontend_url: str
    allowed_redirect_origins: tuple[str, ...]
    trusted_proxies: tuple[str, ...]
    brevo_api_key: str
    email_sender_name: str
    email_sender_address: str
    email_timeout_seconds: float
    email_max_retries: int
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def validate_settings(settings: Settings) -> Settings:
    for name, secret in (("JWT_SECRET", settings.jwt_secret), ("JWT_VERIFY_SECRET", settings.jwt_verify_secret)):
        if len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(f"{name} must be at least {MIN_SECRET_LENGTH} characters.")
    if settings.lockout_max_attempts < 1:
        raise ConfigurationError("LOCKOUT_MAX_ATTEMPTS must be positive.")
    if settings.is_production and not settings.brevo_api_key:
        raise ConfigurationError("BREVO_API_KEY is required in production.")
    for origin in settings.allowed_redirect_origins:
        try:
            url_origin(origin)
        except ValidationError as exc:
            raise ConfigurationError(f"ALLOWED_REDIRECT_ORIGINS has an invalid entry: {origin}") from exc
    for proxy in settings.trusted_proxies:
        try:
            ipaddress.ip_network(proxy, strict=False)
        except ValueError as exc:
            raise ConfigurationError(f"TRUSTED_PROXIES has an invalid entry: {proxy}") from exc
    return settings


def get_settings() -> Settings:
    environment = _env("ENVIRONMENT", "development").strip().lower()
    jwt_secret = _env("JWT_SECRET", "")
    frontend_url = _env("FRONTEND_URL", "http://localhost:3000")
    settings = Settings(
        environment=environment,
        database_url=_env("DATABASE_URL", "sqlite:///./stellar_auth.db"),
        jwt_secret=jwt_secret,
        jwt_verify_secret=_env("JWT_VERIFY_SECRET") or jwt_secret,
        jwt_issuer=_env("JWT_ISSUER", "stellar-auth-service"),
        jwt_audience=_env("JWT_AUDIENCE", "stellar-users"),
        access_token_ttl_minutes=int(_env("ACCESS_TOKEN_TTL_MINUTES", "15")),
        refresh_token_ttl_days=int(_env("REFRESH_TOKEN_TTL_DAYS", "7")),
        verification_token_ttl_hours=int(_env("VERIFICATION_TOKEN_TTL_HOURS", "24")),
        reset_token_ttl_minutes=int(_env("RESET_TOKEN_TTL_MINUTES", "60")),
        token_clock_skew_seconds=int(_env("TOKEN_CLOCK_SKEW_SECONDS", "30")),
        token_binding_strict=_bool("TOKEN_BINDING_STRICT", environment == "production"),
        lockout_max_attempts=int(_env("LOCKOUT_MAX_ATTEMPTS", "5")),
        lockout_duration_minutes=int(_env("LOCKOUT_DURATION_MINUTES", "15")),
        lockout_reset_window_minutes=int(_env("LOCKOUT_RESET_WINDOW_MINUTES", "60")),
        password_hash_rounds=int(_env("PASSWORD_HASH_ROUNDS", "12")),
        require_verified_email=_bool("REQUIRE_VERIFIED_EMAIL", False),
        oauth_state_ttl_minutes=int(_env("OAUTH_STATE_TTL_MINUTES", "10")),
        oauth_state_sweep_seconds=int(_env("OAUTH_STATE_SWEEP_SECONDS", "300")),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=_env("GOOGLE_REDIRECT_URI", ""),
        public_base_url=_env("PUBLIC_BASE_URL", "http://localhost:8000"),
        frontend_url=frontend_url,
        allowed_redirect_origins=_csv("ALLOWED_REDIRECT_ORIGINS", frontend_url),
        trusted_proxies=_csv("TRUSTED_PROXIES"),
        brevo_api_key=_env("BREVO_API_KEY", ""),
        email_sender_name=_env("EMAIL_SENDER_NAME", "Stellar"),
        email_sender_address=_env("EMAIL_SENDER_ADDRESS", "no-reply@localhost"),
        email_timeout_seconds=float(_env("EMAIL_TIMEOUT_SECONDS", "10")),
        email_max_retries=int(_env("EMAIL_MAX_RETRIES", "3")),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )
    return validate_settings(settings)
