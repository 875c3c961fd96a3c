"""
Site bootstrap and administrator authentication endpoints.

POST /api/v1/site/init              create the site account (once)
POST /api/v1/site/request-otp       mail a new verification code   [access guard]
POST /api/v1/site/verify-email      confirm the verification code   [access guard]
POST /api/v1/site/forgot-password   mail a password reset link
POST /api/v1/site/reset-password    set a new password with a reset token
POST /api/v1/site/login             issue access + refresh cookies
POST /api/v1/site/refresh-token     issue a new access cookie
POST /api/v1/site/logout            forget the refresh token, clear cookies

Every response uses the {status, message, errors?, data?} envelope; errors
are rendered by the handlers in errors.py.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status

from config import AppSettings
from dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_otp_service,
    get_password_reset_service,
    get_session_service,
    get_settings,
    get_site_service,
    require_super_admin,
)
from schemas.dto.requests.site import (
    ForgotPasswordRequest,
    InitSiteRequest,
    LoginRequest,
    RefreshTokenRequest,
    RequestOtpRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from schemas.dto.responses.common import EnvelopeResponse, ErrorResponse
from schemas.dto.responses.site import InitSiteData, LoginData, RefreshData
from services.otp_service import OtpService
from services.password_reset_service import PasswordResetService
from services.session_service import SessionService
from services.site_service import SiteService

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 404, 409, 429, 502, 503)
}

router = APIRouter(prefix="/api/v1/site", tags=["site"], responses=_ERROR_RESPONSES)


def _set_cookie(
    response: Response, name: str, value: str, max_age: int, secure: bool
) -> None:
    response.set_cookie(
        name,
        value=value,
        httponly=True,
        secure=secure,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


def _clear_cookie(response: Response, name: str, secure: bool) -> None:
    response.delete_cookie(name, path="/", secure=secure, httponly=True, samesite="lax")


@router.post(
    "/init",
    status_code=status.HTTP_201_CREATED,
    response_model=EnvelopeResponse[InitSiteData],
)
async def init_site(
    body: InitSiteRequest,
    sites: SiteService = Depends(get_site_service),
) -> EnvelopeResponse[InitSiteData]:
    result = await sites.init_site(body)
    return EnvelopeResponse(
        message="Site initialized successfully",
        data=InitSiteData(verification_sent=result.verification_sent),
    )


@router.post(
    "/request-otp",
    response_model=EnvelopeResponse,
    response_model_exclude_none=True,
)
async def request_otp(
    body: RequestOtpRequest,
    _site_id: str = Depends(require_super_admin),
    otp: OtpService = Depends(get_otp_service),
) -> EnvelopeResponse:
    await otp.request_otp(body.email)
    return EnvelopeResponse(message="Verification code sent")


@router.post(
    "/verify-email",
    response_model=EnvelopeResponse,
    response_model_exclude_none=True,
)
async def verify_email(
    body: VerifyEmailRequest,
    _site_id: str = Depends(require_super_admin),
    otp: OtpService = Depends(get_otp_service),
) -> EnvelopeResponse:
    await otp.verify_otp(body.email, body.otp)
    return EnvelopeResponse(message="Email verified successfully")


@router.post(
    "/forgot-password",
    response_model=EnvelopeResponse,
    response_model_exclude_none=True,
)
async def forgot_password(
    body: ForgotPasswordRequest,
    resets: PasswordResetService = Depends(get_password_reset_service),
) -> EnvelopeResponse:
    await resets.request_reset(body.email)
    return EnvelopeResponse(message="Password reset link sent")


@router.post(
    "/reset-password",
    response_model=EnvelopeResponse,
    response_model_exclude_none=True,
)
async def reset_password(
    body: ResetPasswordRequest,
    resets: PasswordResetService = Depends(get_password_reset_service),
) -> EnvelopeResponse:
    await resets.reset_password(body.token, body.new_password)
    return EnvelopeResponse(message="Password reset successfully")


@router.post("/login", response_model=EnvelopeResponse[LoginData])
async def login(
    body: LoginRequest,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
    settings: AppSettings = Depends(get_settings),
) -> EnvelopeResponse[LoginData]:
    site, pair = await sessions.login(body.email, body.password)
    secure = settings.jwt.cookie_secure
    _set_cookie(
        response,
        ACCESS_COOKIE,
        pair.access_token,
        settings.jwt.access_token_ttl_seconds,
        secure,
    )
    _set_cookie(
        response,
        REFRESH_COOKIE,
        pair.refresh_token,
        settings.jwt.refresh_token_ttl_seconds,
        secure,
    )
    return EnvelopeResponse(
        message="Logged in successfully",
        data=LoginData(access_token=pair.access_token, email_verified=site.is_verified),
    )


@router.post("/refresh-token", response_model=EnvelopeResponse[RefreshData])
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = Body(default=None),
    sessions: SessionService = Depends(get_session_service),
    settings: AppSettings = Depends(get_settings),
) -> EnvelopeResponse[RefreshData]:
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    access_token = await sessions.refresh(token)
    _set_cookie(
        response,
        ACCESS_COOKIE,
        access_token,
        settings.jwt.access_token_ttl_seconds,
        settings.jwt.cookie_secure,
    )
    return EnvelopeResponse(
        message="Access token refreshed",
        data=RefreshData(access_token=access_token),
    )


@router.post(
    "/logout",
    response_model=EnvelopeResponse,
    response_model_exclude_none=True,
)
async def logout(
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
    settings: AppSettings = Depends(get_settings),
) -> EnvelopeResponse:
    await sessions.logout(request.cookies.get(REFRESH_COOKIE))
    _clear_cookie(response, ACCESS_COOKIE, settings.jwt.cookie_secure)
    _clear_cookie(response, REFRESH_COOKIE, settings.jwt.cookie_secure)
    return EnvelopeResponse(message="Logged out")
