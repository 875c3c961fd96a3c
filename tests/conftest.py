"""
Shared test fixtures.

Provides in-memory stand-ins for the external collaborators:
- InMemorySiteStore    SiteStore with the same version-conditioned save as Mongo
- RecordingEmailProvider  captures every email instead of sending it
- MutableClock         pinned, manually advanced "now"

Services are wired exactly as dependencies.py wires them, but on top of these.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from bson import ObjectId

from config import JWTSettings, OtpSettings
from errors import AlreadyInitializedError, DeliveryFailedError, StoreUnavailableError
from repositories.protocol import StaleWriteError
from schemas.dto.requests.site import InitSiteRequest
from schemas.models.site import SiteDoc
from services.otp_service import OtpService
from services.password_reset_service import PasswordResetService
from services.session_service import SessionService
from services.site_service import SiteService
from services.token_service import TokenService

ADMIN_EMAIL = "admin@x.com"
ADMIN_PASSWORD = "Correct1!"
START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class MutableClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemorySiteStore:
    """Dict-backed SiteStore. Reads and writes yield to the event loop so
    concurrent coroutines interleave the way they would against a database."""

    def __init__(self) -> None:
        self.doc: Optional[SiteDoc] = None
        self.unavailable = False
        self.saves = 0

    async def _io(self) -> None:
        await asyncio.sleep(0)
        if self.unavailable:
            raise StoreUnavailableError()

    def _copy(self, match: bool) -> Optional[SiteDoc]:
        if self.doc is None or not match:
            return None
        return self.doc.model_copy(deep=True)

    def put(self, site: SiteDoc) -> None:
        self.doc = site.model_copy(deep=True)

    def snapshot(self) -> Optional[SiteDoc]:
        return self._copy(True)

    async def find_singleton(self) -> Optional[SiteDoc]:
        await self._io()
        return self._copy(True)

    async def find_by_id(self, site_id: str) -> Optional[SiteDoc]:
        await self._io()
        return self._copy(self.doc is not None and str(self.doc.id) == site_id)

    async def find_by_email(self, email: str) -> Optional[SiteDoc]:
        await self._io()
        return self._copy(self.doc is not None and self.doc.email == email)

    async def find_by_refresh_token(self, token_hash: str) -> Optional[SiteDoc]:
        await self._io()
        return self._copy(self.doc is not None and self.doc.has_refresh_token(token_hash))

    async def find_by_reset_token(self, token_hash: str, now: datetime) -> Optional[SiteDoc]:
        await self._io()
        reset = self.doc.reset_password if self.doc is not None else None
        return self._copy(
            reset is not None and reset.token_hash == token_hash and reset.expires_at > now
        )

    async def create(self, site: SiteDoc) -> SiteDoc:
        await self._io()
        if self.doc is not None:
            raise AlreadyInitializedError()
        site.id = ObjectId()
        self.put(site)
        return site

    async def save(self, site: SiteDoc, expected_version: int) -> SiteDoc:
        await self._io()
        if self.doc is None or self.doc.version != expected_version:
            raise StaleWriteError(site.site_id)
        site.version = expected_version + 1
        self.put(site)
        self.saves += 1
        return site


class RecordingEmailProvider:
    def __init__(self) -> None:
        self.verification_emails: list[dict] = []
        self.reset_emails: list[dict] = []
        self.fail = False

    async def send_verification_email(
        self, email: str, site_name: str, otp_code: str, expires_in_minutes: int
    ) -> None:
        if self.fail:
            raise DeliveryFailedError()
        self.verification_emails.append(
            {"email": email, "site_name": site_name, "otp_code": otp_code}
        )

    async def send_password_reset_email(
        self, email: str, site_name: str, reset_url: str, expires_in_minutes: int
    ) -> None:
        if self.fail:
            raise DeliveryFailedError()
        self.reset_emails.append(
            {"email": email, "site_name": site_name, "reset_url": reset_url}
        )

    @property
    def last_otp(self) -> str:
        return self.verification_emails[-1]["otp_code"]

    @property
    def last_reset_token(self) -> str:
        return self.reset_emails[-1]["reset_url"].split("token=", 1)[1]


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def store() -> InMemorySiteStore:
    return InMemorySiteStore()


@pytest.fixture
def mailer() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(
        access_token_secret="access-secret-for-tests-0123456789",
        refresh_token_secret="refresh-secret-for-tests-9876543210",
        access_token_ttl_seconds=900,
        refresh_token_ttl_seconds=7 * 24 * 3600,
        cookie_secure=False,
    )


@pytest.fixture
def otp_settings() -> OtpSettings:
    return OtpSettings()


@pytest.fixture
def token_service(jwt_settings, clock) -> TokenService:
    return TokenService(jwt_settings, clock)


@pytest.fixture
def otp_service(store, mailer, otp_settings, clock) -> OtpService:
    return OtpService(store, mailer, otp_settings, clock)


@pytest.fixture
def reset_service(store, mailer, otp_settings, clock) -> PasswordResetService:
    return PasswordResetService(store, mailer, otp_settings, "https://admin.example.com", clock)


@pytest.fixture
def session_service(store, token_service, clock) -> SessionService:
    return SessionService(store, token_service, clock)


@pytest.fixture
def site_service(store, otp_service, clock) -> SiteService:
    return SiteService(store, otp_service, clock)


@pytest.fixture
def init_request() -> InitSiteRequest:
    return InitSiteRequest(
        site_name="Multibourn Gallery",
        site_description="A media gallery",
        email=ADMIN_EMAIL,
        password=ADMIN_PASSWORD,
    )


@pytest.fixture
async def initialized_site(site_service, init_request) -> SiteDoc:
    result = await site_service.init_site(init_request)
    return result.site
