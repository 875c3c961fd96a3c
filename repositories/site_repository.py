"""
MongoDB implementation of SiteStore on the async PyMongo driver.

Every driver failure is converted to StoreUnavailableError so services never
see pymongo exceptions. save() is conditioned on the version the caller read
(optimistic concurrency); a lost race raises StaleWriteError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import AlreadyInitializedError, StoreUnavailableError
from repositories.protocol import StaleWriteError
from schemas.models.site import SiteDoc
from shared.logging import get_logger

log = get_logger(__name__)

SITES_COLLECTION = "sites"


async def ensure_indexes(db: AsyncDatabase) -> None:
    """Create the indexes the site collection relies on."""
    sites = db[SITES_COLLECTION]
    await sites.create_index([("singleton", ASCENDING)], unique=True)
    await sites.create_index([("email", ASCENDING)], unique=True)
    await sites.create_index([("reset_password.token_hash", ASCENDING)], sparse=True)
    await sites.create_index([("refresh_tokens.token_hash", ASCENDING)])


class MongoSiteRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def _find_one(self, query: dict, op: str) -> Optional[SiteDoc]:
        try:
            doc = await self._col.find_one(query)
        except PyMongoError as e:
            log.error("site_store_error", op=op, error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError() from e
        return SiteDoc.from_mongo(doc)

    async def find_singleton(self) -> Optional[SiteDoc]:
        return await self._find_one({"singleton": True}, "find_singleton")

    async def find_by_id(self, site_id: str) -> Optional[SiteDoc]:
        if not ObjectId.is_valid(site_id):
            return None
        return await self._find_one({"_id": ObjectId(site_id)}, "find_by_id")

    async def find_by_email(self, email: str) -> Optional[SiteDoc]:
        return await self._find_one({"email": email}, "find_by_email")

    async def find_by_refresh_token(self, token_hash: str) -> Optional[SiteDoc]:
        return await self._find_one(
            {"refresh_tokens.token_hash": token_hash}, "find_by_refresh_token"
        )

    async def find_by_reset_token(
        self, token_hash: str, now: datetime
    ) -> Optional[SiteDoc]:
        return await self._find_one(
            {
                "reset_password.token_hash": token_hash,
                "reset_password.expires_at": {"$gt": now},
            },
            "find_by_reset_token",
        )

    async def create(self, site: SiteDoc) -> SiteDoc:
        doc = site.to_mongo()
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            log.warning("site_create_rejected", reason="duplicate_key")
            raise AlreadyInitializedError() from e
        except PyMongoError as e:
            log.error("site_store_error", op="create", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError() from e
        site.id = result.inserted_id
        return site

    async def save(self, site: SiteDoc, expected_version: int) -> SiteDoc:
        """Replace the stored document if its version is still *expected_version*."""
        site.version = expected_version + 1
        doc = site.to_mongo()
        doc.pop("_id", None)
        try:
            result = await self._col.replace_one(
                {"_id": site.id, "version": expected_version}, doc
            )
        except PyMongoError as e:
            site.version = expected_version
            log.error("site_store_error", op="save", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError() from e
        if result.matched_count == 0:
            site.version = expected_version
            log.info("site_save_conflict", site_id=site.site_id, expected_version=expected_version)
            raise StaleWriteError(site.site_id)
        return site
