"""Password hashing and verification (bcrypt)."""

from functools import lru_cache

import bcrypt

from partsauth.core.config import settings

# Min/max lengths for e-mail and password validation.
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def _encode(plain_password: str) -> bytes:
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    return plain_password.encode("utf-8")[:72]


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Salt and cost are embedded in the result."""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(plain_password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash. bcrypt compares in constant time."""
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache
def _dummy_hash() -> str:
    return hash_password("dummy-password-for-timing")


def burn_password_check(plain_password: str) -> None:
    """Spend one bcrypt check so unknown e-mails take as long as wrong passwords."""
    verify_password(plain_password, _dummy_hash())
