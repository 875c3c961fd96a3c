"""
Application configuration via pydantic-settings.

Every group reads the process environment (and .env). AppSettings composes
the groups; each one can also be built on its own, which is how services and
tests take only the part they need.

Access and refresh tokens are signed with two separate secrets so that a
leak of one cannot be used to mint the other kind.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class DatabaseSettings(_EnvSettings):
    mongodb_uri: str
    db_name: str = "multibourn"


class JWTSettings(_EnvSettings):
    jwt_issuer: str = "multibourn"
    access_token_ttl_seconds: int = 900  # 15 minutes
    refresh_token_ttl_seconds: int = 2592000  # 30 days
    cookie_secure: bool = True

    access_token_secret: str = ""
    refresh_token_secret: str = ""


class OtpSettings(_EnvSettings):
    otp_length: int = 6
    otp_ttl_minutes: int = 10

    # Resend backoff: min(2^attempts * base, cap)
    otp_backoff_base_minutes: int = 2
    otp_backoff_cap_minutes: int = 30

    reset_token_ttl_minutes: int = 10


class EmailSettings(_EnvSettings):
    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@multibourn.app"
    zepto_from_name: str = "Multibourn"
    email_timeout_seconds: float = 5.0


class LoggingSettings(_EnvSettings):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(_EnvSettings):
    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


_SUB_CONFIGS = {
    "db": DatabaseSettings,
    "jwt": JWTSettings,
    "otp": OtpSettings,
    "email": EmailSettings,
    "logging": LoggingSettings,
    "sentry": SentrySettings,
}


class AppSettings(_EnvSettings):
    env: str = "development"
    # Admin frontend origin; password reset links point here
    app_url: str = "http://localhost:5173"
    app_name: str = "Multibourn"

    # Include exception detail in 5xx responses; unset means "not production"
    debug: Optional[bool] = None

    cors_origins: list[str] = ["*"]

    # None disables the OpenAPI UI
    docs_url: Optional[str] = "/docs"

    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _fill_defaults(self) -> "AppSettings":
        if self.debug is None:
            self.debug = not self.is_production
        for name, settings_cls in _SUB_CONFIGS.items():
            if getattr(self, name) is None:
                setattr(self, name, settings_cls())
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
