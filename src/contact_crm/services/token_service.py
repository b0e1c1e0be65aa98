"""Token service — issues and verifies signed, time-limited identity claims.

A token encodes ``{sub: user id, role, iat, exp}`` and is signed with the
configured secret. Nothing is stored server-side: a token is valid as long
as its signature matches and its expiry has not passed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from contact_crm.errors import InvalidTokenError
from contact_crm.models.user import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The verified caller of a request."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """Mint and check bearer tokens.

    Parameters
    ----------
    secret:
        Signing secret; tokens cannot be forged without it.
    ttl:
        Validity period counted from issuance.
    clock:
        Returns the current aware UTC time. Injected so expiry can be tested
        without sleeping.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock

    def issue(self, user_id: int, role: Role) -> str:
        """Return a token for *user_id* valid for exactly ``ttl`` from now."""
        issued_at = self._clock()
        # NumericDate may be fractional; the lifetime is exactly ``ttl``.
        claims = {
            "sub": str(user_id),
            "role": Role(role).value,
            "iat": issued_at.timestamp(),
            "exp": (issued_at + self._ttl).timestamp(),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        """Decode *token* and return the identity it carries.

        Raises :class:`InvalidTokenError` on a bad signature, a passed
        expiry or any malformed content.
        """
        try:
            # Expiry is checked below against the injected clock.
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            logger.info("Rejected token: %s", exc)
            raise InvalidTokenError() from exc

        try:
            user_id = int(claims["sub"])
            role = Role(claims["role"])
            expires_at = float(claims["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.info("Rejected token with malformed claims")
            raise InvalidTokenError() from exc

        if self._clock().timestamp() >= expires_at:
            logger.info("Rejected expired token for user %s", user_id)
            raise InvalidTokenError("Session expired. Please login again.")

        return Identity(user_id=user_id, role=role)
