"""
FastAPI dependency providers.

Long-lived collaborators (settings, site store, email provider, clock) are
created in the app lifespan and kept on app.state; protocol services are
cheap and built per request from them.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from config import AppSettings
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import SiteStore
from services.otp_service import OtpService
from services.password_reset_service import PasswordResetService
from services.session_service import SessionService
from services.site_service import SiteService
from services.token_service import TokenService
from shared.datetime_utils import Clock

ACCESS_COOKIE = "super_admin_access_token"
REFRESH_COOKIE = "super_admin_refresh_token"


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_site_store(request: Request) -> SiteStore:
    return request.app.state.site_store


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_otp_service(
    store: SiteStore = Depends(get_site_store),
    email_provider: EmailProvider = Depends(get_email_provider),
    settings: AppSettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> OtpService:
    return OtpService(store, email_provider, settings.otp, clock)


def get_password_reset_service(
    store: SiteStore = Depends(get_site_store),
    email_provider: EmailProvider = Depends(get_email_provider),
    settings: AppSettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> PasswordResetService:
    return PasswordResetService(
        store, email_provider, settings.otp, settings.app_url, clock
    )


def get_session_service(
    store: SiteStore = Depends(get_site_store),
    tokens: TokenService = Depends(get_token_service),
    clock: Clock = Depends(get_clock),
) -> SessionService:
    return SessionService(store, tokens, clock)


def get_site_service(
    store: SiteStore = Depends(get_site_store),
    otp_service: OtpService = Depends(get_otp_service),
    clock: Clock = Depends(get_clock),
) -> SiteService:
    return SiteService(store, otp_service, clock)


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def require_super_admin(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> str:
    """Access guard: resolve the site id from the access cookie or bearer header."""
    token = request.cookies.get(ACCESS_COOKIE) or _bearer_token(request)
    site_id = sessions.require_access(token)
    request.state.site_id = site_id
    return site_id
