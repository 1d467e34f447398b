from __future__ import annotations

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from stellar_auth.application.ports.login_attempt_port import LoginAttemptPort
from stellar_auth.domain.entities.login_attempt import LoginAttemptRecord
from stellar_auth.infrastructure.db.errors import translate_db_errors
from stellar_auth.infrastructure.db.mappers.accounts_mapper import map_row_to_login_attempt
from stellar_auth.infrastructure.db.models.accounts import LoginAttemptModel


login_attempts = LoginAttemptModel.__table__

_UNAVAILABLE = "Login attempt storage is unavailable."


class SqlLoginAttemptRepository(LoginAttemptPort):
    def __init__(self, engine):
        self._engine = engine

    def get(self, *, email: str) -> LoginAttemptRecord | None:
        stmt = select(login_attempts).where(login_attempts.c.email == email).limit(1)
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_login_attempt(row)

    def save(self, record: LoginAttemptRecord, *, ip: str | None) -> None:
        values = {
            "attempts": record.count,
            "first_attempt_at": record.first_attempt_at,
            "last_attempt_at": record.last_attempt_at,
            "locked_until": record.locked_until,
            "ip_address": ip,
        }
        update_stmt = update(login_attempts).where(login_attempts.c.email == record.email).values(**values)
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.begin() as conn:
                if conn.execute(update_stmt).rowcount == 1:
                    return
            try:
                with self._engine.begin() as conn:
                    conn.execute(insert(login_attempts).values(email=record.email, **values))
            except IntegrityError:
                # Another worker inserted the row first.
                with self._engine.begin() as conn:
                    conn.execute(update_stmt)

    def delete(self, *, email: str) -> None:
        with translate_db_errors(_UNAVAILABLE):
            with self._engine.begin() as conn:
                conn.execute(delete(login_attempts).where(login_attempts.c.email == email))
