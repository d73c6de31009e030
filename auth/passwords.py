"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a >72 byte password that bcrypt 4.x rejects outright.

Every call to hash_password() draws a fresh salt from bcrypt.gensalt(), so
the same plaintext never produces the same stored hash twice.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

import bcrypt

# Work factor matches the value the admin records were originally hashed with.
BCRYPT_ROUNDS = 10

# bcrypt refuses longer input outright.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the plaintext password.

    Raises ValueError when the UTF-8 encoding is longer than
    MAX_PASSWORD_BYTES; callers check password_too_long() first.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A corrupt or non-bcrypt hash, or an over-long password, makes bcrypt
    raise ValueError; that is a failed match, not an error for the caller.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization: login runs one bcrypt comparison against this hash when
# the email is unknown, so response time does not reveal whether it exists.
DUMMY_HASH: str = hash_password("portfolio_timing_dummy")
