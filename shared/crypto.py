"""
Hashing helpers.

Passwords go through argon2id (argon2-cffi). Short-lived secrets handed to
the administrator (verification codes, reset tokens, refresh tokens) are
stored as SHA-256 hex digests and compared in constant time.
"""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()

# Login against a missing account verifies against this so it costs the same
# as a wrong password.
_DUMMY_HASH = _password_hasher.hash("dummy-password-for-timing")


def hash_password(plain_password: str) -> str:
    """Return an argon2id hash string (parameters and salt included)."""
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """True when *plain_password* matches; False on mismatch or a malformed hash."""
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def burn_password_check(plain_password: str) -> None:
    verify_password(plain_password, _DUMMY_HASH)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of *token*; this is what gets persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(plain_token: str, token_hash: str) -> bool:
    return hmac.compare_digest(hash_token(plain_token), token_hash)
