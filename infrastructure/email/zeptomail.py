"""ZeptoMail implementation of EmailProvider.

Both messages are rendered from Jinja2 templates in templates/emails (HTML)
with a plain-text alternative, then posted to the ZeptoMail send API. The
HttpClient timeout bounds each attempt; a missing API token, a transport
error or a non-2xx answer all surface as DeliveryFailedError.
"""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from errors import DeliveryFailedError
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

ZEPTO_SEND_URL = "https://api.zeptomail.com/v1.1/email"
ZEPTO_KEY_PREFIX = "Zoho-enczapikey "
TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates" / "emails"


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        template_dir: Path = TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._templates = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
        )

    def _authorization(self) -> str:
        key = self._settings.zepto_api_token
        return key if key.startswith(ZEPTO_KEY_PREFIX) else ZEPTO_KEY_PREFIX + key

    def _render(self, template: str, **context: Any) -> str:
        return self._templates.get_template(template).render(**context)

    async def _deliver(self, to_email: str, subject: str, html: str, text: str) -> None:
        if not self._settings.zepto_api_token:
            log.error("email_not_configured", subject=subject)
            raise DeliveryFailedError("Email delivery is not configured.")

        message = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html,
            "textbody": text,
        }
        try:
            response = await self._http.post(
                ZEPTO_SEND_URL,
                json=message,
                headers={"Authorization": self._authorization()},
            )
        except Exception as e:
            log.error(
                "email_delivery_error",
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DeliveryFailedError() from e

        if not 200 <= response.status_code < 300:
            log.error(
                "email_delivery_rejected",
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise DeliveryFailedError()

        log.info("email_delivered", subject=subject)

    async def send_verification_email(
        self, email: str, site_name: str, otp_code: str, expires_in_minutes: int
    ) -> None:
        html = self._render(
            "verification.html",
            site_name=site_name,
            otp_code=otp_code,
            expires_in_minutes=expires_in_minutes,
        )
        text = (
            f"Your {site_name} verification code is {otp_code}.\n"
            f"It expires in {expires_in_minutes} minutes."
        )
        await self._deliver(email, f"Verify your email - {site_name}", html, text)

    async def send_password_reset_email(
        self, email: str, site_name: str, reset_url: str, expires_in_minutes: int
    ) -> None:
        html = self._render(
            "password_reset.html",
            site_name=site_name,
            reset_url=reset_url,
            expires_in_minutes=expires_in_minutes,
        )
        text = (
            f"Choose a new {site_name} password here: {reset_url}\n"
            f"The link expires in {expires_in_minutes} minutes. "
            "If you did not ask for a reset, ignore this email."
        )
        await self._deliver(email, f"Reset your password - {site_name}", html, text)
