"""Client-side URL cache and request coalescing.

SignedUrlCache remembers the last URL per l_item uid together with the moment
it stops being trusted. SingleFlight makes concurrent callers asking for the
same key share one in-flight request.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_PRESIGNED_EXPIRY_S = 3600


@dataclass(frozen=True)
class CachedUrl:
    url: str
    expires_at: float  # epoch seconds


class SignedUrlCache:
    """In-memory URL cache keyed by l_item uid."""

    def __init__(
        self,
        presigned_expiry_s: int = DEFAULT_PRESIGNED_EXPIRY_S,
        clock: Callable[[], float] = time.time,
    ):
        self.presigned_expiry_s = presigned_expiry_s
        self._clock = clock
        self._entries: dict[str, CachedUrl] = {}

    def get(self, uid: str) -> str | None:
        """Return the cached URL if its expiry is still in the future."""
        entry = self._entries.get(str(uid))
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.url

    def put(self, uid: str, url: str, expires_at: float | None = None) -> CachedUrl:
        if expires_at is None:
            expires_at = self._clock() + self.presigned_expiry_s
        entry = CachedUrl(url=url, expires_at=expires_at)
        self._entries[str(uid)] = entry
        return entry

    def entry(self, uid: str) -> CachedUrl | None:
        return self._entries.get(str(uid))

    def invalidate(self, uid: str) -> None:
        self._entries.pop(str(uid), None)

    def __len__(self) -> int:
        return len(self._entries)


class SingleFlight:
    """Coalesce concurrent fetches for the same key.

    The first caller starts the fetch; callers arriving while it runs await
    the same task. The entry is dropped when the task finishes, success or
    failure, so the next call fetches again.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task[Any]] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._inflight[key] = task

            def _forget(done: asyncio.Task[Any], key: Hashable = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)

        # A cancelled waiter must not cancel the fetch other callers share
        return await asyncio.shield(task)
