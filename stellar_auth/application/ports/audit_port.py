from __future__ import annotations

from typing import Any, Literal, Protocol


AuditEvent = Literal[
    "LOGIN_SUCCESS",
    "LOGIN_FAILED",
    "ACCOUNT_LOCKED",
    "ACCOUNT_CREATED",
    "ACCOUNT_DELETED",
    "EMAIL_VERIFIED",
    "PASSWORD_RESET_REQUESTED",
    "PASSWORD_RESET_COMPLETED",
    "TOKEN_CONTEXT_MISMATCH",
    "REFRESH_TOKEN_REUSED",
    "GOOGLE_OAUTH_FAILED",
    "SUSPICIOUS_ACTIVITY",
]

CRITICAL_AUDIT_EVENTS: frozenset[str] = frozenset(
    {
        "LOGIN_FAILED",
        "ACCOUNT_LOCKED",
        "ACCOUNT_DELETED",
        "SUSPICIOUS_ACTIVITY",
        "TOKEN_CONTEXT_MISMATCH",
        "REFRESH_TOKEN_REUSED",
        "GOOGLE_OAUTH_FAILED",
    }
)


class AuditPort(Protocol):
    def record(self, event: AuditEvent, data: dict[str, Any]) -> None:
        ...
