from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from stellar_auth.domain.entities.token_claims import OneTimePurpose


@dataclass(frozen=True)
class OneTimeTokenRecord:
    id: str
    user_id: str
    purpose: OneTimePurpose
    token_hash: str
    created_at: datetime
    expires_at: datetime
    used_at: datetime | None
