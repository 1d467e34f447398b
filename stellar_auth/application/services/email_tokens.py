from __future__ import annotations

from stellar_auth.application.ports.token_port import TokenPort
from stellar_auth.application.services.one_time_token_store import OneTimeTokenStore
from stellar_auth.application.use_cases.auth_common import utcnow
from stellar_auth.domain.entities.token_claims import OneTimePurpose
from stellar_auth.domain.entities.user import User
from stellar_auth.domain.exceptions import TokenMalformedError


class EmailTokenService:
    """Verification and password-reset tokens sent by email.

    The emailed token is signed and carries the recipient's email; its ``jti``
    is a random secret recorded in the one-time store. Redeeming requires the
    signature, the email match, and the single-use consume to all succeed.
    """

    def __init__(self, *, store: OneTimeTokenStore, token_port: TokenPort):
        self._store = store
        self._token_port = token_port

    def issue(self, *, user: User, purpose: OneTimePurpose) -> str:
        secret = self._store.issue(
            user_id=user.id,
            purpose=purpose,
            ttl=self._token_port.ttl_for(purpose),
        )
        minted = self._token_port.mint(
            purpose,
            subject=user.id,
            email=user.email,
            jti=secret,
            now=utcnow(),
        )
        return minted.token

    def redeem(self, *, token: str, email: str, purpose: OneTimePurpose) -> str:
        claims = self._token_port.verify(purpose, token, expected_email=email)
        user_id = self._store.consume(token=claims.jti, purpose=purpose)
        if user_id != claims.subject:
            raise TokenMalformedError("Invalid token.")
        return user_id
