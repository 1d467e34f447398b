from __future__ import annotations

from datetime import datetime
from typing import Protocol


class RefreshTokenLedgerPort(Protocol):
    def spend(self, *, jti: str, user_id: str, expires_at: datetime, spent_at: datetime) -> bool:
        """Record ``jti`` as spent; return False if it already was."""
        ...

    def purge_expired(self, *, now: datetime) -> int:
        ...
