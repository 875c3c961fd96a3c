"""
Self-service password reset.

request_reset() mails a single-use link carrying a random token; only its
SHA-256 digest is stored, with a short expiry. reset_password() finds the
site by digest and unexpired expiry, checks the raw new password against the
policy, stores the new hash and clears the reset state.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from urllib.parse import urlencode

from config import OtpSettings
from errors import (
    AccountNotFoundError,
    InvalidOrExpiredTokenError,
    ValidationFailedError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import SiteStore
from schemas.models.site import ResetPasswordState, SiteDoc
from services.concurrency import mutate_site
from shared.crypto import hash_password, hash_token
from shared.datetime_utils import Clock, utc_now
from shared.generators import generate_secure_token
from shared.logging import get_logger
from shared.validators import password_policy_violations

log = get_logger(__name__)


def ensure_password_policy(password: str, field: str = "password") -> None:
    """Raise ValidationFailedError listing every rule *password* breaks."""
    violations = password_policy_violations(password)
    if violations:
        raise ValidationFailedError.for_field(field, " ".join(violations))


class PasswordResetService:
    """Issues reset links and consumes them. Tokens are stored as SHA-256 digests."""

    def __init__(
        self,
        store: SiteStore,
        email_provider: EmailProvider,
        settings: OtpSettings,
        app_url: str,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._email = email_provider
        self._settings = settings
        self._app_url = app_url.rstrip("/")
        self._clock = clock

    @property
    def reset_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.reset_token_ttl_minutes)

    def reset_url(self, token: str) -> str:
        return f"{self._app_url}/reset-password?{urlencode({'token': token})}"

    async def request_reset(self, email: str) -> None:
        """Store a fresh reset token for *email* and mail the link.

        A pending reset is replaced, so only the newest link works. The
        current password stays valid until the reset is completed.

        Raises:
            AccountNotFoundError: No site uses *email*.
            DeliveryFailedError: The link could not be mailed; the token is
                already stored.
        """
        token = generate_secure_token()

        def apply(site: SiteDoc) -> None:
            now = self._clock()
            site.reset_password = ResetPasswordState(
                token_hash=hash_token(token), expires_at=now + self.reset_ttl
            )
            site.updated_at = now

        site, _ = await mutate_site(
            self._store,
            lambda: self._store.find_by_email(email),
            apply,
            on_missing=AccountNotFoundError,
        )
        log.info("password_reset_requested", site_id=site.site_id)
        await self._email.send_password_reset_email(
            site.email,
            site.site_name,
            self.reset_url(token),
            self._settings.reset_token_ttl_minutes,
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """Replace the password of the site holding the unexpired *token*.

        Args:
            token: Plaintext token from the reset link.
            new_password: Raw new password, checked against the policy.

        Raises:
            InvalidOrExpiredTokenError: No site holds *token* or it expired.
            ValidationFailedError: *new_password* breaks the policy; the token
                stays usable.
        """
        token_hash = hash_token(token or "")
        if await self._store.find_by_reset_token(token_hash, self._clock()) is None:
            raise InvalidOrExpiredTokenError()

        # The raw password is validated here, never the stored hash
        ensure_password_policy(new_password)
        password_hash = await asyncio.to_thread(hash_password, new_password)

        def apply(site: SiteDoc) -> None:
            site.password_hash = password_hash
            site.reset_password = None
            site.updated_at = self._clock()

        # Re-read under the version check so a token is consumed at most once
        site, _ = await mutate_site(
            self._store,
            lambda: self._store.find_by_reset_token(token_hash, self._clock()),
            apply,
            on_missing=InvalidOrExpiredTokenError,
        )
        log.info("password_reset_completed", site_id=site.site_id)
