"""Password hashing and one-time code primitives."""
from __future__ import annotations

import secrets

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a salted hash suitable for storage."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches the stored hash."""
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # Unrecognized or corrupt hash formats never authenticate.
        return False


def generate_numeric_code(digits: int = 6) -> str:
    """Return a random numeric code with exactly ``digits`` digits and no leading zero."""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))
