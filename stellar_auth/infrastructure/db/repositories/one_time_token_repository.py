from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, select, update

from stellar_auth.application.ports.one_time_token_port import OneTimeTokenPort
from stellar_auth.domain.entities.one_time_token import OneTimeTokenRecord
from stellar_auth.infrastructure.db.errors import translate_db_errors
from stellar_auth.infrastructure.db.mappers.accounts_mapper import map_row_to_one_time_token
from stellar_auth.infrastructure.db.models.accounts import OneTimeTokenModel


one_time_tokens = OneTimeTokenModel.__table__

_UNAVAILABLE = "Token storage is unavailable."


class SqlOneTimeTokenRepository(OneTimeTokenPort):
    def __init__(self, engine):
        self._engine = engine

    def insert(self, record: OneTimeTokenRecord) -> None:
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.begin() as conn:
                conn.execute(
                    insert(one_time_tokens).values(
                        id=record.id,
                        user_id=record.user_id,
                        purpose=record.purpose,
                        token_hash=record.token_hash,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                        used_at=record.used_at,
                    )
                )

    def get_by_hash(self, *, token_hash: str) -> OneTimeTokenRecord | None:
        stmt = select(one_time_tokens).where(one_time_tokens.c.token_hash == token_hash).limit(1)
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_one_time_token(row)

    def mark_used(self, *, record_id: str, used_at: datetime) -> bool:
        # Compare-and-set: only one concurrent caller sees rowcount == 1.
        stmt = (
            update(one_time_tokens)
            .where(one_time_tokens.c.id == record_id, one_time_tokens.c.used_at.is_(None))
            .values(used_at=used_at)
        )
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
        return result.rowcount == 1
