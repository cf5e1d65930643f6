"""
Credential helpers: bcrypt password hashing and signed bearer tokens.

``token_issuer`` is the process-wide instance built from settings; the
HTTP layer hands it to services through ``app.dependencies``.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from app.config import settings
from app.exceptions import UnauthorizedError


def hash_password(raw_password: str, rounds: int | None = None) -> str:
    """Hash *raw_password* with bcrypt and return the utf-8 string."""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw_password.encode(), salt).decode()


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    return bcrypt.hashpw(b"no-such-user", bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))


def verify_password(raw_password: str, password_hash: str | None) -> bool:
    """
    Check *raw_password* against a stored bcrypt hash.

    Without a hash the password is still checked against a throwaway one,
    so a missing account costs the same as a wrong password.
    """
    if not password_hash:
        bcrypt.checkpw(raw_password.encode(), _dummy_hash())
        return False
    return bcrypt.checkpw(raw_password.encode(), password_hash.encode("utf-8"))


class TokenIssuer:
    """Issue and verify HS256 access tokens carrying user id and email."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires: timedelta = timedelta(hours=24)) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expires = expires

    def issue(self, user_id: str, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Decode *token*, raising UnauthorizedError when it is expired or invalid."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError("Invalid token") from exc

        if not payload.get("sub"):
            raise UnauthorizedError("Invalid token")
        return payload


token_issuer = TokenIssuer(
    settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    expires=timedelta(hours=settings.JWT_EXPIRES_HOURS),
)
