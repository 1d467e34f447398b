from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class OAuthState:
    value: str
    created_at: datetime
    expires_at: datetime
    redirect_to: str | None = None
