from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _enable_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache(maxsize=4)
def get_engine(dsn: str) -> Engine:
    if dsn.startswith("sqlite"):
        engine = create_engine(dsn, future=True, connect_args={"check_same_thread": False, "timeout": 15})
        event.listen(engine, "connect", _enable_sqlite_pragmas)
        return engine
    return create_engine(dsn, future=True, pool_pre_ping=True)


def create_schema(engine: Engine) -> None:
    # Registers the tables on Base.metadata.
    from stellar_auth.infrastructure.db.models import accounts  # noqa: F401

    Base.metadata.create_all(engine)
