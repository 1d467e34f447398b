from __future__ import annotations

from stellar_auth.application.dto.auth import DeleteAccountInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.application.ports.audit_port import AuditPort
from stellar_auth.domain.exceptions import UserNotFoundError

from .auth_common import utcnow


class DeleteAccountUseCase:
    """Soft delete: the row stays, marked deleted, and can no longer sign in."""

    def __init__(self, *, account_port: AccountPort, audit_port: AuditPort):
        self._account_port = account_port
        self._audit_port = audit_port

    def execute(self, command: DeleteAccountInput) -> None:
        user = self._account_port.get_user_by_id(user_id=command.user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found or already deleted.")

        if not self._account_port.soft_delete(user_id=user.id, deleted_at=utcnow()):
            raise UserNotFoundError("User not found or already deleted.")
        self._audit_port.record(
            "ACCOUNT_DELETED",
            {"user_id": user.id, "email": user.email, "ip": command.context.ip},
        )


class PurgeAccountUseCase:
    """Administrative hard delete of a user and everything keyed to it."""

    def __init__(self, *, account_port: AccountPort, audit_port: AuditPort):
        self._account_port = account_port
        self._audit_port = audit_port

    def execute(self, *, user_id: str, actor_id: str) -> None:
        if not self._account_port.purge(user_id=user_id):
            raise UserNotFoundError("User not found.")
        self._audit_port.record("ACCOUNT_DELETED", {"user_id": user_id, "actor_id": actor_id, "purged": True})
