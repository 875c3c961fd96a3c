"""
Site account document model.

Maps to the `sites` MongoDB collection. At most one document ever exists;
the `singleton` field carries a unique index so the database rejects a
second insert.

email_verification is a tagged union:
- PendingVerification holds the OTP digest together with its expiry and the
  resend backoff counters, so a code can never exist without an expiry.
- Verified is terminal for the verification flow.

Secrets (OTP, reset token, refresh tokens) are stored as SHA-256 digests.
version is bumped by every save and used for optimistic concurrency.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from schemas.models.base import MongoBaseModel, UtcDateTime


class PendingVerification(BaseModel):
    """Unverified account with an outstanding one-time code."""

    state: Literal["pending"] = "pending"
    otp_hash: str
    otp_expires_at: UtcDateTime
    last_resend_at: Optional[UtcDateTime] = None
    resend_attempts: int = Field(default=0, ge=0)


class Verified(BaseModel):
    state: Literal["verified"] = "verified"
    verified_at: Optional[UtcDateTime] = None


EmailVerification = Annotated[
    Union[PendingVerification, Verified], Field(discriminator="state")
]


class ResetPasswordState(BaseModel):
    """Outstanding password reset; cleared when consumed."""

    token_hash: str
    expires_at: UtcDateTime


class RefreshTokenEntry(BaseModel):
    token_hash: str
    issued_at: UtcDateTime
    expires_at: UtcDateTime


class SiteDoc(MongoBaseModel):
    """Document model for the `sites` collection."""

    singleton: Literal[True] = True

    site_name: str
    site_description: Optional[str] = None
    email: str
    password_hash: str
    currency: str = "USD"
    timezone: str = "America/New_York"
    date_format: str = "MMMM DD, YYYY"
    time_format: str = "h:mm A"
    week_starts_on: str = "Monday"

    email_verification: EmailVerification
    reset_password: Optional[ResetPasswordState] = None
    refresh_tokens: list[RefreshTokenEntry] = []

    version: int = Field(default=1, ge=1)
    created_at: Optional[UtcDateTime] = None
    updated_at: Optional[UtcDateTime] = None

    @property
    def site_id(self) -> str:
        return str(self.id) if self.id is not None else ""

    @property
    def is_verified(self) -> bool:
        return isinstance(self.email_verification, Verified)

    def pending_verification(self) -> Optional[PendingVerification]:
        if isinstance(self.email_verification, PendingVerification):
            return self.email_verification
        return None

    def has_refresh_token(self, token_hash: str) -> bool:
        return any(entry.token_hash == token_hash for entry in self.refresh_tokens)

    def prune_refresh_tokens(self, now: datetime) -> int:
        """Drop refresh entries that expired before *now*; return how many."""
        kept = [entry for entry in self.refresh_tokens if entry.expires_at > now]
        removed = len(self.refresh_tokens) - len(kept)
        self.refresh_tokens = kept
        return removed
