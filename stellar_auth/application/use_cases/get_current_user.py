from __future__ import annotations

from stellar_auth.application.dto.auth import AuthUserOutput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.domain.exceptions import UserNotFoundError

from .auth_common import build_auth_user_output


class GetCurrentUserUseCase:
    def __init__(self, *, account_port: AccountPort):
        self._account_port = account_port

    def execute(self, *, user_id: str) -> AuthUserOutput:
        user = self._account_port.get_user_by_id(user_id=user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found.")
        return build_auth_user_output(user)
