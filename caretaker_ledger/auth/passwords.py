"""
Password hashing utilities.

bcrypt only looks at the first 72 bytes of a password; we truncate
explicitly so newer bcrypt releases (which reject longer input) behave
the same as older ones.

Older user rows hold plaintext passwords. verify_password accepts them
so those users can still log in, and is_legacy_hash tells the caller to
store a real hash afterwards.
"""

import hmac
from typing import Optional

import bcrypt

from caretaker_ledger.config import get_settings

BCRYPT_MAX_BYTES = 72
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt."""
    rounds = rounds or get_settings().auth.bcrypt_rounds
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def is_legacy_hash(stored: str) -> bool:
    return not stored.startswith(BCRYPT_PREFIXES)


def verify_password(password: str, stored: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash (or a legacy plaintext value)."""
    if not stored or password is None:
        return False
    if is_legacy_hash(stored):
        return hmac.compare_digest(_encode(password), _encode(stored))
    try:
        return bcrypt.checkpw(_encode(password), stored.encode("utf-8"))
    except ValueError:
        return False
