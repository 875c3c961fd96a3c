"""SiteStore protocol. Services depend on this rather than on MongoDB directly."""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.site import SiteDoc


class StaleWriteError(Exception):
    """save() found the stored version no longer matches the one read."""


class SiteStore(Protocol):
    async def find_singleton(self) -> Optional[SiteDoc]: ...

    async def find_by_id(self, site_id: str) -> Optional[SiteDoc]: ...

    async def find_by_email(self, email: str) -> Optional[SiteDoc]: ...

    async def find_by_refresh_token(self, token_hash: str) -> Optional[SiteDoc]: ...

    async def find_by_reset_token(
        self, token_hash: str, now: datetime
    ) -> Optional[SiteDoc]: ...

    async def create(self, site: SiteDoc) -> SiteDoc: ...

    async def save(self, site: SiteDoc, expected_version: int) -> SiteDoc: ...
