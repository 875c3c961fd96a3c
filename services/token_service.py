"""
Issuance and verification of signed access and refresh tokens (HS256 JWTs).

Access tokens carry the site id so the access guard never touches the store.
Refresh tokens carry no identity; a refresh token is only honoured while its
digest is listed on the site document. Each kind has its own secret.

Expiry is checked against the injected clock rather than PyJWT's wall clock,
so tests can pin time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional

import jwt

from config import JWTSettings
from errors import InvalidTokenError
from shared.datetime_utils import Clock, from_timestamp, to_timestamp, utc_now
from shared.generators import generate_token_id
from shared.logging import get_logger

log = get_logger(__name__)

TokenKind = Literal["access", "refresh"]

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    site_id: Optional[str] = None
    token_id: Optional[str] = None


class TokenService:
    """Mints and checks access and refresh JWTs with one secret per kind."""

    def __init__(self, settings: JWTSettings, clock: Clock = utc_now) -> None:
        if not settings.access_token_secret or not settings.refresh_token_secret:
            raise RuntimeError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must both be set"
            )
        if settings.access_token_secret == settings.refresh_token_secret:
            raise RuntimeError("Access and refresh tokens must use different secrets")
        self._settings = settings
        self._clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.access_token_ttl_seconds)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.refresh_token_ttl_seconds)

    def _secret(self, kind: TokenKind) -> str:
        if kind == "access":
            return self._settings.access_token_secret
        return self._settings.refresh_token_secret

    def issue_access_token(self, site_id: str) -> str:
        """
        Mint an access token for the site administrator.

        Args:
            site_id: Site id, stored in the ``sub`` claim

        Returns:
            Encoded JWT valid for ``access_token_ttl_seconds``
        """
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "sub": str(site_id),
            "iat": to_timestamp(now),
            "exp": to_timestamp(now + self.access_ttl),
            "type": "access",
        }
        return jwt.encode(claims, self._secret("access"), algorithm=_ALGORITHM)

    def issue_refresh_token(self) -> str:
        """
        Mint a refresh token. It carries no site id, only a random ``jti``.

        Returns:
            Encoded JWT valid for ``refresh_token_ttl_seconds``
        """
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "iat": to_timestamp(now),
            "exp": to_timestamp(now + self.refresh_ttl),
            "jti": generate_token_id(),
            "type": "refresh",
        }
        return jwt.encode(claims, self._secret("refresh"), algorithm=_ALGORITHM)

    def verify(self, token: str, expected_kind: TokenKind) -> TokenClaims:
        """Check signature, structure, kind and expiry; raise InvalidTokenError otherwise."""
        try:
            claims = jwt.decode(
                token,
                self._secret(expected_kind),
                algorithms=[_ALGORITHM],
                issuer=self._settings.jwt_issuer,
                options={
                    "require": ["exp", "iat", "iss"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            log.info("token_rejected", kind=expected_kind, reason=type(e).__name__)
            raise InvalidTokenError() from e

        if claims.get("type") != expected_kind:
            log.info("token_rejected", kind=expected_kind, reason="wrong_kind")
            raise InvalidTokenError()

        expires_at = from_timestamp(claims["exp"])
        if self._clock() >= expires_at:
            log.info("token_rejected", kind=expected_kind, reason="expired")
            raise InvalidTokenError()

        site_id = claims.get("sub")
        if expected_kind == "access" and not site_id:
            raise InvalidTokenError()

        return TokenClaims(
            kind=expected_kind,
            issued_at=from_timestamp(claims["iat"]),
            expires_at=expires_at,
            site_id=site_id,
            token_id=claims.get("jti"),
        )
