"""
One-time site bootstrap.

init_site() creates the single site account in pending verification with a
fresh code and mails it. A second call fails with AlreadyInitializedError;
the unique index on ``singleton`` backs the check against concurrent inits.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from errors import AlreadyInitializedError, DeliveryFailedError
from repositories.protocol import SiteStore
from schemas.dto.requests.site import InitSiteRequest
from schemas.models.site import SiteDoc
from services.otp_service import OtpService
from services.password_reset_service import ensure_password_policy
from shared.crypto import hash_password
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class InitResult:
    site: SiteDoc
    verification_sent: bool


class SiteService:
    """Creates the single site account and sends its first verification code."""

    def __init__(
        self,
        store: SiteStore,
        otp_service: OtpService,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._otp = otp_service
        self._clock = clock

    async def is_initialized(self) -> bool:
        return await self._store.find_singleton() is not None

    async def init_site(self, request: InitSiteRequest) -> InitResult:
        """Create the site account in pending verification and mail the first code.

        Args:
            request: Validated profile fields and administrator credentials.

        Returns:
            The created site and whether the verification email went out.

        Raises:
            AlreadyInitializedError: A site account already exists.
            ValidationFailedError: The password breaks the policy.
        """
        if await self.is_initialized():
            log.warning("site_init_rejected", reason="already_initialized")
            raise AlreadyInitializedError()

        ensure_password_policy(request.password)
        password_hash = await asyncio.to_thread(hash_password, request.password)

        now = self._clock()
        pending, code = self._otp.issue_code(now)
        site = SiteDoc(
            site_name=request.site_name,
            site_description=request.site_description,
            email=request.email,
            password_hash=password_hash,
            currency=request.currency,
            timezone=request.timezone,
            date_format=request.date_format,
            time_format=request.time_format,
            week_starts_on=request.week_starts_on,
            email_verification=pending,
            created_at=now,
            updated_at=now,
        )
        site = await self._store.create(site)
        log.info("site_initialized", site_id=site.site_id)

        try:
            await self._otp.send_code(site, code)
        except DeliveryFailedError:
            log.error("site_init_verification_not_sent", site_id=site.site_id)
            return InitResult(site=site, verification_sent=False)
        return InitResult(site=site, verification_sent=True)
