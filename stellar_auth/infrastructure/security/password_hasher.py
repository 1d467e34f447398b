from __future__ import annotations

from passlib.context import CryptContext

from stellar_auth.application.ports.password_hasher_port import PasswordHasherPort


class PasswordHasher(PasswordHasherPort):
    """Argon2 hashing with bcrypt kept verifiable for legacy hashes.

    ``rounds`` is the argon2 time cost; raising it makes every hash (and every
    sign-in) proportionally more expensive.
    """

    def __init__(self, *, rounds: int = 12):
        self._ctx = CryptContext(
            schemes=["argon2", "bcrypt"],
            deprecated="auto",
            argon2__rounds=rounds,
        )

    def hash(self, plain_password: str) -> str:
        return self._ctx.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str) -> bool:
        try:
            return self._ctx.verify(plain_password, password_hash)
        except (ValueError, TypeError):
            return False

    def verify_and_update(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        try:
            verified, replacement_hash = self._ctx.verify_and_update(plain_password, password_hash)
            return bool(verified), replacement_hash
        except (ValueError, TypeError):
            return False, None
