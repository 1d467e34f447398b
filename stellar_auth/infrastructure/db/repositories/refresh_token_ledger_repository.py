from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, insert
from sqlalchemy.exc import IntegrityError

from stellar_auth.application.ports.refresh_token_ledger_port import RefreshTokenLedgerPort
from stellar_auth.infrastructure.db.errors import translate_db_errors
from stellar_auth.infrastructure.db.models.accounts import SpentRefreshTokenModel


spent_refresh_tokens = SpentRefreshTokenModel.__table__

_UNAVAILABLE = "Session storage is unavailable."


class SqlRefreshTokenLedger(RefreshTokenLedgerPort):
    def __init__(self, engine):
        self._engine = engine

    def spend(self, *, jti: str, user_id: str, expires_at: datetime, spent_at: datetime) -> bool:
        stmt = insert(spent_refresh_tokens).values(
            jti=jti,
            user_id=user_id,
            expires_at=expires_at,
            spent_at=spent_at,
        )
        with translate_db_errors(_UNAVAILABLE):
            try:
                with self._engine.begin() as conn:
                    conn.execute(stmt)
            except IntegrityError:
                return False
        return True

    def purge_expired(self, *, now: datetime) -> int:
        stmt = delete(spent_refresh_tokens).where(spent_refresh_tokens.c.expires_at < now)
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
        return result.rowcount
