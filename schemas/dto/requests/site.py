"""
Request DTOs for the site bootstrap and authentication endpoints.

InitSiteRequest         -> POST /api/v1/site/init
RequestOtpRequest       -> POST /api/v1/site/request-otp
VerifyEmailRequest      -> POST /api/v1/site/verify-email
ForgotPasswordRequest   -> POST /api/v1/site/forgot-password
ResetPasswordRequest    -> POST /api/v1/site/reset-password
LoginRequest            -> POST /api/v1/site/login
RefreshTokenRequest     -> POST /api/v1/site/refresh-token (body optional)

Field names accept both snake_case and the camelCase keys used by the admin
frontend (``siteName``, ``newPassword`` ...).
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from shared.validators import (
    SITE_DESCRIPTION_MAX_LENGTH,
    SITE_NAME_MAX_LENGTH,
    SITE_NAME_MIN_LENGTH,
    normalize_email,
    password_policy_violations,
    validate_currency,
    validate_date_format,
    validate_email,
    validate_time_format,
    validate_timezone,
    validate_weekday,
)


def _email_field(value: str) -> str:
    value = normalize_email(value)
    if not validate_email(value):
        raise ValueError("Invalid email format.")
    return value


class InitSiteRequest(BaseModel):
    """Request body for POST /init: profile fields plus admin credentials."""

    model_config = ConfigDict(populate_by_name=True)

    site_name: str = Field(validation_alias=AliasChoices("site_name", "siteName"))
    site_description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("site_description", "siteDescription"),
    )
    email: str
    password: str
    currency: str = "USD"
    timezone: str = "America/New_York"
    date_format: str = Field(
        default="MMMM DD, YYYY",
        validation_alias=AliasChoices("date_format", "dateFormat"),
    )
    time_format: str = Field(
        default="h:mm A",
        validation_alias=AliasChoices("time_format", "timeFormat"),
    )
    week_starts_on: str = Field(
        default="Monday",
        validation_alias=AliasChoices("week_starts_on", "weekStartsOn"),
    )

    @field_validator("site_name")
    @classmethod
    def _check_site_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < SITE_NAME_MIN_LENGTH:
            raise ValueError(
                f"Site name must be at least {SITE_NAME_MIN_LENGTH} characters long."
            )
        if len(v) > SITE_NAME_MAX_LENGTH:
            raise ValueError(f"Site name cannot exceed {SITE_NAME_MAX_LENGTH} characters.")
        return v

    @field_validator("site_description")
    @classmethod
    def _check_description(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > SITE_DESCRIPTION_MAX_LENGTH:
            raise ValueError(
                f"Site description cannot exceed {SITE_DESCRIPTION_MAX_LENGTH} characters."
            )
        return v

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _email_field(v)

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        violations = password_policy_violations(v)
        if violations:
            raise ValueError(" ".join(violations))
        return v

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if not validate_currency(v):
            raise ValueError("Invalid currency code.")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        if not validate_timezone(v):
            raise ValueError("Invalid time zone. Please provide a valid time zone.")
        return v

    @field_validator("date_format")
    @classmethod
    def _check_date_format(cls, v: str) -> str:
        if not validate_date_format(v):
            raise ValueError("Invalid date format.")
        return v

    @field_validator("time_format")
    @classmethod
    def _check_time_format(cls, v: str) -> str:
        if not validate_time_format(v):
            raise ValueError("Invalid time format.")
        return v

    @field_validator("week_starts_on")
    @classmethod
    def _check_week_start(cls, v: str) -> str:
        if not validate_weekday(v):
            raise ValueError("Invalid week start day.")
        return v


class RequestOtpRequest(BaseModel):
    """Request body for POST /request-otp."""

    model_config = ConfigDict(populate_by_name=True)

    email: str

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_email(v)


class VerifyEmailRequest(BaseModel):
    """Request body for POST /verify-email.

    ``otp`` is the code sent to the site email address; ``code`` is accepted
    as an alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str
    otp: str = Field(validation_alias=AliasChoices("otp", "code"))

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_email(v)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /forgot-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: str

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /reset-password.

    The new password is checked against the policy by the service, after the
    token lookup.
    """

    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str = Field(
        validation_alias=AliasChoices("new_password", "newPassword", "password")
    )


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_email(v)


class RefreshTokenRequest(BaseModel):
    """Optional body for POST /refresh-token; the cookie takes precedence."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refresh_token", "refreshToken")
    )
