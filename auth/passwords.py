"""
auth/passwords.py -- Password hashing and constant-time login checks.

Passwords: bcrypt used directly (no passlib wrapper). Bcrypt's cost factor
makes brute-force expensive for low-entropy secrets. The _DUMMY_HASH constant
enables timing equalization in authenticate_user() so response time does not
reveal whether a phone number is registered.

Layer rule: no imports from web/ or session/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("alliance.auth")

_BCRYPT_ROUNDS = 10


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects secrets longer than 72 bytes; create_account() refuses
    them before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage.
        logger.warning("Stored password hash could not be parsed")
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("alliance_timing_dummy")


def authenticate_user(store: UserStore, phone_number: str, password: str) -> User | None:
    """Check a phone number / password pair.

    Always runs bcrypt whether or not the user exists:
    - Unknown phone number: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any mismatch. Store errors
    propagate so the caller can report them as a login failure.
    """
    user = store.get_by_phone(phone_number)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
