from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class ConfigurationError(DomainError):
    """Service configuration is missing or unsafe."""


class ValidationError(DomainError):
    """Malformed caller input; the message is safe to show."""


class AuthenticationError(DomainError):
    """Bad credentials or unusable session material."""


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password."""


class EmailNotVerifiedError(AuthenticationError):
    """Sign-in refused until the email address is verified."""


class RefreshSessionInvalidError(AuthenticationError):
    """Refresh token does not resolve to an active account."""


class AccountLockedError(DomainError):
    """Too many failed sign-ins for this email."""

    def __init__(self, message: str, *, remaining_minutes: int):
        super().__init__(message)
        self.remaining_minutes = remaining_minutes


class ConflictError(DomainError):
    """Write refused because it collides with existing state."""


class AccountAlreadyExistsError(ConflictError):
    """Email already registered."""


class TokenError(AuthenticationError):
    """Base for token failures."""


class TokenExpiredError(TokenError):
    """Token is past its expiry."""


class TokenMalformedError(TokenError):
    """Token cannot be decoded, is not signed by us, or has bad claims."""


class TokenAlgorithmRejectedError(TokenError):
    """Token header names an algorithm other than the allowed one."""


class TokenContextMismatchError(TokenError):
    """Token binding does not match the presenting client; possible theft."""


class TokenTypeMismatchError(TokenError):
    """Token kind differs from the one the caller expected."""


class TokenNotFoundError(TokenError):
    """One-time token was never issued."""


class TokenAlreadyUsedError(TokenError):
    """One-time token was already consumed."""


class RefreshTokenReusedError(TokenError):
    """Refresh token was already rotated or revoked."""


class StateNotFoundOrExpiredError(TokenError):
    """OAuth state is unknown, already consumed, or expired."""


class NotFoundError(DomainError):
    """Entity missing after successful authentication."""


class UserNotFoundError(NotFoundError):
    """User row not found."""


class DependencyError(DomainError):
    """Storage, email, or identity provider failure."""


class OAuthProviderError(DependencyError):
    """Identity provider rejected the exchange or returned unusable data."""
