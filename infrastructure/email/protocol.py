"""EmailProvider protocol. Services depend on this rather than on ZeptoMail directly.

Implementations raise DeliveryFailedError when a message cannot be handed
to the mail service.
"""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, site_name: str, otp_code: str, expires_in_minutes: int
    ) -> None: ...

    async def send_password_reset_email(
        self, email: str, site_name: str, reset_url: str, expires_in_minutes: int
    ) -> None: ...
