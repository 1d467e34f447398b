from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from stellar_auth.domain.exceptions import DependencyError


@contextmanager
def translate_db_errors(message: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise DependencyError(message) from exc
