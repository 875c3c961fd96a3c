"""
Administrator sessions: login, access-token refresh, logout and the access
guard used in front of privileged operations.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from errors import (
    AccountNotFoundError,
    InvalidCredentialsError,
    MissingTokenError,
)
from repositories.protocol import SiteStore
from schemas.models.site import RefreshTokenEntry, SiteDoc
from services.concurrency import mutate_site
from services.token_service import TokenService
from shared.crypto import burn_password_check, hash_token, verify_password
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class SessionService:
    """Password login backed by short-lived access tokens and stored refresh tokens.

    Access tokens are verified without touching the store. A refresh token is
    honoured only while its digest is listed on the site document.
    """

    def __init__(
        self,
        store: SiteStore,
        tokens: TokenService,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._clock = clock

    async def login(self, email: str, password: str) -> tuple[SiteDoc, TokenPair]:
        """Check the password and mint an access/refresh pair.

        The refresh token digest is appended to the site document; entries
        that have already expired are pruned in the same write.
        """
        site = await self._store.find_by_email(email)
        if site is None:
            await asyncio.to_thread(burn_password_check, password)
            log.warning("login_failed", reason="invalid_credentials", email_exists=False)
            raise InvalidCredentialsError()
        if not await asyncio.to_thread(verify_password, password, site.password_hash):
            log.warning("login_failed", reason="invalid_password", site_id=site.site_id)
            raise InvalidCredentialsError()

        site_id = site.site_id
        refresh_token = self._tokens.issue_refresh_token()
        refresh_hash = hash_token(refresh_token)

        def apply(current: SiteDoc) -> int:
            now = self._clock()
            pruned = current.prune_refresh_tokens(now)
            current.refresh_tokens.append(
                RefreshTokenEntry(
                    token_hash=refresh_hash,
                    issued_at=now,
                    expires_at=now + self._tokens.refresh_ttl,
                )
            )
            current.updated_at = now
            return pruned

        site, pruned = await mutate_site(
            self._store,
            lambda: self._store.find_by_id(site_id),
            apply,
            on_missing=InvalidCredentialsError,
        )
        pair = TokenPair(
            access_token=self._tokens.issue_access_token(site.site_id),
            refresh_token=refresh_token,
        )
        log.info(
            "login_success",
            site_id=site.site_id,
            active_sessions=len(site.refresh_tokens),
            pruned_sessions=pruned,
        )
        return site, pair

    async def refresh(self, refresh_token: Optional[str]) -> str:
        """Exchange a stored, valid refresh token for a new access token.

        The refresh token itself is not rotated.
        """
        if not refresh_token:
            raise MissingTokenError("Refresh token is not provided.")

        site = await self._store.find_by_refresh_token(hash_token(refresh_token))
        if site is None:
            log.warning("token_refresh_failed", reason="unknown_refresh_token")
            raise AccountNotFoundError("Refresh token is not recognised.")

        self._tokens.verify(refresh_token, "refresh")
        log.info("token_refreshed", site_id=site.site_id)
        return self._tokens.issue_access_token(site.site_id)

    def require_access(self, access_token: Optional[str]) -> str:
        """Return the site id carried by a valid access token."""
        if not access_token:
            raise MissingTokenError("Super admin access token is not provided.")
        claims = self._tokens.verify(access_token, "access")
        return claims.site_id

    async def logout(self, refresh_token: Optional[str]) -> bool:
        """Forget *refresh_token*; returns False when it was not on record."""
        if not refresh_token:
            return False
        token_hash = hash_token(refresh_token)

        def apply(site: SiteDoc) -> None:
            site.refresh_tokens = [
                entry for entry in site.refresh_tokens if entry.token_hash != token_hash
            ]
            site.updated_at = self._clock()

        try:
            site, _ = await mutate_site(
                self._store,
                lambda: self._store.find_by_refresh_token(token_hash),
                apply,
                on_missing=AccountNotFoundError,
            )
        except AccountNotFoundError:
            return False
        log.info("logout", site_id=site.site_id)
        return True
