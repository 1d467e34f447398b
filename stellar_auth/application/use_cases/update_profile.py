from __future__ import annotations

import logging

from stellar_auth.application.dto.auth import AuthUserOutput, UpdateProfileInput
from stellar_auth.application.ports.account_port import AccountPort
from stellar_auth.domain.exceptions import UserNotFoundError, ValidationError
from stellar_auth.domain.services.profile_policy import normalize_avatar_url, normalize_display_name

from .auth_common import build_auth_user_output, utcnow


logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"name", "avatar_url"})


class UpdateProfileUseCase:
    def __init__(self, *, account_port: AccountPort):
        self._account_port = account_port

    def execute(self, command: UpdateProfileInput) -> AuthUserOutput:
        if not command.updates:
            raise ValidationError("No updates provided.")
        unknown = set(command.updates) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}.")

        user = self._account_port.get_user_by_id(user_id=command.user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found.")

        name = user.name
        avatar_url = user.avatar_url
        if "name" in command.updates:
            name = normalize_display_name(command.updates["name"])
        if "avatar_url" in command.updates:
            avatar_url = normalize_avatar_url(command.updates["avatar_url"])

        now = utcnow()
        self._account_port.update_profile(user_id=user.id, name=name, avatar_url=avatar_url, updated_at=now)
        logger.info("update_profile: updated user_id=%s fields=%s", user.id, ",".join(sorted(command.updates)))

        updated = self._account_port.get_user_by_id(user_id=user.id)
        if updated is None:
            raise UserNotFoundError("User not found.")
        return build_auth_user_output(updated)
