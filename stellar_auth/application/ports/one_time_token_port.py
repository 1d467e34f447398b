from __future__ import annotations

from datetime import datetime
from typing import Protocol

from stellar_auth.domain.entities.one_time_token import OneTimeTokenRecord


class OneTimeTokenPort(Protocol):
    def insert(self, record: OneTimeTokenRecord) -> None:
        ...

    def get_by_hash(self, *, token_hash: str) -> OneTimeTokenRecord | None:
        ...

    def mark_used(self, *, record_id: str, used_at: datetime) -> bool:
        """Set used_at only if it is still unset; return whether this call won."""
        ...
