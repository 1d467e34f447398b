from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from stellar_auth.application.ports.one_time_token_port import OneTimeTokenPort
from stellar_auth.application.use_cases.auth_common import utcnow
from stellar_auth.domain.entities.one_time_token import OneTimeTokenRecord
from stellar_auth.domain.entities.token_claims import OneTimePurpose
from stellar_auth.domain.exceptions import (
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenNotFoundError,
)


logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def hash_one_time_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class OneTimeTokenStore:
    """Server-side ledger of single-use verification and reset secrets.

    Only the SHA-256 digest of a secret is stored. ``consume`` is linearizable
    per token: the final write is a compare-and-set on ``used_at`` so exactly
    one concurrent caller wins.
    """

    def __init__(
        self,
        *,
        token_port: OneTimeTokenPort,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._token_port = token_port
        self._clock = clock

    def issue(self, *, user_id: str, purpose: OneTimePurpose, ttl: timedelta) -> str:
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self._clock()
        self._token_port.insert(
            OneTimeTokenRecord(
                id=str(uuid4()),
                user_id=user_id,
                purpose=purpose,
                token_hash=hash_one_time_token(token),
                created_at=now,
                expires_at=now + ttl,
                used_at=None,
            )
        )
        logger.info("one_time_token_store: issued purpose=%s user_id=%s", purpose, user_id)
        return token

    def consume(self, *, token: str, purpose: OneTimePurpose) -> str:
        if not token:
            raise TokenNotFoundError("Invalid or expired token.")

        record = self._token_port.get_by_hash(token_hash=hash_one_time_token(token))
        if record is None or record.purpose != purpose:
            raise TokenNotFoundError("Invalid or expired token.")
        if record.used_at is not None:
            raise TokenAlreadyUsedError("Token has already been used.")

        now = self._clock()
        if now >= record.expires_at:
            raise TokenExpiredError("Token has expired. Please request a new one.")

        if not self._token_port.mark_used(record_id=record.id, used_at=now):
            raise TokenAlreadyUsedError("Token has already been used.")

        logger.info("one_time_token_store: consumed purpose=%s user_id=%s", purpose, record.user_id)
        return record.user_id
