"""Download URL resolution with cache, coalescing, and expiry repair.

Signed URLs go stale after their expiry. Staleness is repaired lazily: an
action that fails with UrlExpiredError triggers one re-sign and one retry.
Concurrent repairs for the same item share a single re-sign request.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from readlisten.client.api import ReadListenClient, UrlExpiredError
from readlisten.client.cache import SignedUrlCache, SingleFlight
from readlisten.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ListeningUrlResolver:
    def __init__(
        self,
        api: ReadListenClient,
        cache: SignedUrlCache | None = None,
        flights: SingleFlight | None = None,
    ):
        self.api = api
        self.cache = cache if cache is not None else SignedUrlCache()
        self.flights = flights if flights is not None else SingleFlight()

    async def resolve(self, uid: UUID | str) -> str:
        """Cached URL while its expiry is in the future, otherwise fetch it."""
        uid = str(uid)
        cached = self.cache.get(uid)
        if cached is not None:
            return cached

        async def fetch() -> str:
            url = await self.api.get_listening_url(uid)
            self.cache.put(uid, url)
            return url

        return await self.flights.get_or_fetch(("url", uid), fetch)

    async def refresh(self, uid: UUID | str) -> str:
        """Re-sign via the API and replace the cached entry."""
        uid = str(uid)

        async def fetch() -> str:
            url = await self.api.resign_listening_url(uid)
            self.cache.put(uid, url)
            logger.info("listening_url_refreshed", l_item_uid=uid)
            return url

        return await self.flights.get_or_fetch(("resign", uid), fetch)

    async def with_fresh_url(
        self, uid: UUID | str, action: Callable[[str], Awaitable[T]]
    ) -> T:
        """Run ``action(url)``; on UrlExpiredError refresh once and retry once.

        A second UrlExpiredError propagates to the caller.
        """
        url = await self.resolve(uid)
        try:
            return await action(url)
        except UrlExpiredError as e:
            logger.info("listening_url_expired", l_item_uid=str(uid), status=e.status)
        fresh = await self.refresh(uid)
        return await action(fresh)

    async def download_url(self, uid: UUID | str) -> str:
        """A URL that answered a probe, re-signed first if the cached one did not."""
        url = await self.resolve(uid)
        if await self.api.probe_url(url):
            return url
        return await self.refresh(uid)
