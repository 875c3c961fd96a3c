"""
Secret generators for verification codes, reset links and JWT ids.

Everything here draws from ``secrets``; callers store only digests of what
these return (see shared.crypto.hash_token).
"""

from __future__ import annotations

import secrets

OTP_DIGITS = "0123456789"
RESET_TOKEN_BYTES = 32


def generate_otp_code(length: int = 6) -> str:
    """Return *length* random decimal digits; leading zeros are kept."""
    return "".join(secrets.choice(OTP_DIGITS) for _ in range(length))


def generate_secure_token(num_bytes: int = RESET_TOKEN_BYTES) -> str:
    """Return *num_bytes* of randomness as unpadded URL-safe base64.

    32 bytes encode to 43 characters, safe to drop into a query string.
    """
    return secrets.token_urlsafe(num_bytes)


def generate_token_id() -> str:
    """Return a random 128-bit hex identifier (used as the JWT ``jti`` claim)."""
    return secrets.token_hex(16)
