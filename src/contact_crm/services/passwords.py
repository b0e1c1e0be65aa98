"""Password hashing — one-way hash plus constant-time verification."""

from __future__ import annotations

from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Return ``True`` if *password* matches *hashed*; malformed hashes never match."""
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False
