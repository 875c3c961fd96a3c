"""
Response payloads (the ``data`` member of the envelope) for site endpoints.

InitSiteData   -> POST /init  (201)
LoginData      -> POST /login  (200)
RefreshData    -> POST /refresh-token  (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class InitSiteData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requires_verification: bool = True
    verification_sent: bool


class LoginData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    email_verified: bool


class RefreshData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str
