from __future__ import annotations

import logging

from fastapi import HTTPException

from stellar_auth.domain.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    DependencyError,
    DomainError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)

GENERIC_AUTH_MESSAGE = "Authentication failed."
GENERIC_CONFLICT_MESSAGE = "Unable to create account."


def to_http_exception(exc: DomainError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AccountLockedError):
        return HTTPException(
            status_code=423,
            detail={"message": str(exc), "remaining_minutes": exc.remaining_minutes},
        )
    if isinstance(exc, EmailNotVerifiedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, AuthenticationError):
        logger.info("api: authentication_failed error=%s", type(exc).__name__)
        detail = str(exc) if isinstance(exc, InvalidCredentialsError) else GENERIC_AUTH_MESSAGE
        return HTTPException(status_code=401, detail=detail)
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=GENERIC_CONFLICT_MESSAGE)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        logger.error("api: configuration_error error=%s", exc)
        return HTTPException(status_code=503, detail="Service is not configured for this operation.")
    if isinstance(exc, DependencyError):
        logger.error("api: dependency_error error=%s", exc)
        return HTTPException(status_code=503, detail="Service temporarily unavailable.")
    logger.error("api: unmapped_domain_error error=%s", type(exc).__name__)
    return HTTPException(status_code=500, detail="Internal error.")
