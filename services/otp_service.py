"""
Email verification by one-time code.

A site starts in PendingVerification and moves to Verified once the
administrator enters the code mailed to the site address. Resends are
throttled per account with an exponential backoff:

    interval = min(2^resend_attempts * base, cap)    (base 2 min, cap 30 min)

The interval uses the attempt count before it is incremented, and only
applies once a code has been sent through request_otp (last_resend_at set).
"""

from __future__ import annotations

from datetime import datetime, timedelta

from config import OtpSettings
from errors import (
    AccountNotFoundError,
    AlreadyVerifiedError,
    DeliveryFailedError,
    InvalidOrExpiredCodeError,
    TooSoonError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import SiteStore
from schemas.models.site import PendingVerification, SiteDoc, Verified
from services.concurrency import mutate_site
from shared.crypto import hash_token, tokens_match
from shared.datetime_utils import Clock, utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)


def resend_backoff(resend_attempts: int, base_minutes: int = 2, cap_minutes: int = 30) -> timedelta:
    """Minimum wait between two sends after *resend_attempts* prior resends."""
    # Clamp the exponent so a huge counter cannot overflow the multiplication
    exponent = min(resend_attempts, 16)
    return timedelta(minutes=min((2**exponent) * base_minutes, cap_minutes))


class OtpService:
    """Issues, resends and checks the site email verification code.

    Only the SHA-256 digest of a code is stored. Codes are mailed after the
    new state has been saved.
    """

    def __init__(
        self,
        store: SiteStore,
        email_provider: EmailProvider,
        settings: OtpSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._email = email_provider
        self._settings = settings
        self._clock = clock

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.otp_ttl_minutes)

    def issue_code(
        self,
        now: datetime,
        *,
        last_resend_at: datetime | None = None,
        resend_attempts: int = 0,
    ) -> tuple[PendingVerification, str]:
        """Return a fresh pending state and the plaintext code it was built from."""
        code = generate_otp_code(self._settings.otp_length)
        pending = PendingVerification(
            otp_hash=hash_token(code),
            otp_expires_at=now + self.otp_ttl,
            last_resend_at=last_resend_at,
            resend_attempts=resend_attempts,
        )
        return pending, code

    async def send_code(self, site: SiteDoc, code: str) -> None:
        """Mail *code* to the site address.

        Raises:
            DeliveryFailedError: The email provider did not accept the message.
        """
        await self._email.send_verification_email(
            site.email, site.site_name, code, self._settings.otp_ttl_minutes
        )

    async def request_otp(self, email: str) -> None:
        """Issue a new code for *email* and mail it, honouring the resend backoff.

        Raises:
            AccountNotFoundError: No site uses *email*.
            AlreadyVerifiedError: The address is already verified.
            TooSoonError: The backoff interval has not elapsed yet.
            DeliveryFailedError: The code was saved but could not be mailed.
        """

        def apply(site: SiteDoc) -> str:
            pending = site.pending_verification()
            if pending is None:
                raise AlreadyVerifiedError()

            now = self._clock()
            attempts = pending.resend_attempts
            if pending.last_resend_at is not None:
                interval = resend_backoff(
                    attempts,
                    self._settings.otp_backoff_base_minutes,
                    self._settings.otp_backoff_cap_minutes,
                )
                elapsed = now - pending.last_resend_at
                if elapsed < interval:
                    log.info(
                        "otp_request_throttled",
                        site_id=site.site_id,
                        resend_attempts=attempts,
                        wait_seconds=int((interval - elapsed).total_seconds()),
                    )
                    raise TooSoonError(interval - elapsed)
                attempts += 1

            site.email_verification, code = self.issue_code(
                now, last_resend_at=now, resend_attempts=attempts
            )
            site.updated_at = now
            return code

        site, code = await mutate_site(
            self._store,
            lambda: self._store.find_by_email(email),
            apply,
            on_missing=AccountNotFoundError,
        )
        log.info(
            "otp_issued",
            site_id=site.site_id,
            resend_attempts=site.email_verification.resend_attempts,
        )
        try:
            await self.send_code(site, code)
        except DeliveryFailedError:
            # The code and last_resend_at are saved, so the backoff still applies
            log.error(
                "otp_issued_not_delivered",
                site_id=site.site_id,
                resend_attempts=site.email_verification.resend_attempts,
            )
            raise

    async def verify_otp(self, email: str, code: str) -> None:
        """Mark the site email verified if *code* matches the outstanding, unexpired code."""

        def apply(site: SiteDoc) -> None:
            pending = site.pending_verification()
            if pending is None:
                raise AlreadyVerifiedError()

            now = self._clock()
            if now > pending.otp_expires_at:
                log.info("otp_verification_failed", site_id=site.site_id, reason="expired")
                raise InvalidOrExpiredCodeError()
            if not tokens_match(code or "", pending.otp_hash):
                log.info("otp_verification_failed", site_id=site.site_id, reason="mismatch")
                raise InvalidOrExpiredCodeError()

            site.email_verification = Verified(verified_at=now)
            site.updated_at = now

        site, _ = await mutate_site(
            self._store,
            lambda: self._store.find_by_email(email),
            apply,
            on_missing=AccountNotFoundError,
        )
        log.info("email_verified", site_id=site.site_id)
