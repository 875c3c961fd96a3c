"""
Optimistic read-modify-write for the site document.

mutate_site() loads a fresh copy, lets the caller check and change it, and
saves conditioned on the version that was read. When another request won the
race the load/check/change cycle is repeated, so domain checks (backoff,
expiry, already-verified) always run against the state being overwritten.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from errors import ConcurrentUpdateError
from repositories.protocol import SiteStore, StaleWriteError
from schemas.models.site import SiteDoc
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3


async def mutate_site(
    store: SiteStore,
    load: Callable[[], Awaitable[Optional[SiteDoc]]],
    apply: Callable[[SiteDoc], T],
    *,
    on_missing: Callable[[], Exception],
    attempts: int = MAX_ATTEMPTS,
) -> tuple[SiteDoc, T]:
    """Load, mutate and save the site document, retrying lost races.

    Args:
        store: Store used for the conditional save.
        load: Returns the current document (or None).
        apply: Checks and mutates the document in place; raising aborts the
            operation without writing. Must not perform side effects such as
            sending email.
        on_missing: Builds the error raised when *load* finds nothing.

    Returns:
        The saved document and whatever *apply* returned.
    """
    for attempt in range(1, attempts + 1):
        site = await load()
        if site is None:
            raise on_missing()
        expected_version = site.version
        result = apply(site)
        try:
            saved = await store.save(site, expected_version)
        except StaleWriteError:
            log.info("site_write_retry", attempt=attempt, site_id=site.site_id)
            continue
        return saved, result
    raise ConcurrentUpdateError()
