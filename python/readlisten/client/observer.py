"""Audio job observer.

Watches one content item while its audio is generated:

    Idle ──watch(Locked)──▶ Polling ──Ready──▶ Resolved
                              │
                              ├──backoff exhausted──▶ Expired
                              └──Empty (job failed)──▶ Idle

Polling runs in an asyncio task that sleeps the current backoff interval,
re-reads the item's audio reference, and stops on resolution or exhaustion.
cancel(), aclose() and watching another item tear the task down; no callback
fires after teardown.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from readlisten.audio_ref import AudioRef
from readlisten.client.api import ReadListenClient
from readlisten.client.backoff import PollBackoff
from readlisten.client.urls import ListeningUrlResolver
from readlisten.logging import get_logger

logger = get_logger(__name__)


class ObserverState(str, Enum):
    idle = "idle"
    polling = "polling"
    resolved = "resolved"
    expired = "expired"


class AudioJobObserver:
    def __init__(
        self,
        api: ReadListenClient,
        resolver: ListeningUrlResolver | None = None,
        *,
        backoff_factory: Callable[[], PollBackoff] = PollBackoff,
        on_change: Callable[["AudioJobObserver"], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.resolver = resolver if resolver is not None else ListeningUrlResolver(api)
        self._backoff_factory = backoff_factory
        self._on_change = on_change
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.rl_item_id: int | None = None
        self.audio_ref: AudioRef = AudioRef.empty()
        self.state = ObserverState.idle
        self.url: str | None = None
        self.backoff: PollBackoff | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def watch(self, rl_item_id: int, audio_ref: AudioRef) -> None:
        """Start observing an item; replaces any previous watch.

        Must be called from a running event loop.
        """
        self.cancel()
        self.rl_item_id = rl_item_id
        self.audio_ref = audio_ref
        self.url = None
        self.backoff = None

        if audio_ref.is_empty:
            self.state = ObserverState.idle
            return

        if audio_ref.is_ready:
            self.state = ObserverState.polling
            self._task = asyncio.create_task(self._resolve(audio_ref))
            return

        self.state = ObserverState.polling
        self.backoff = self._backoff_factory()
        self._task = asyncio.create_task(self._poll(rl_item_id))

    async def wait(self) -> ObserverState:
        """Wait for the current watch to finish and return the final state."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        return self.state

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            if self.state is ObserverState.polling:
                self.state = ObserverState.idle

    async def aclose(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _finish(self, state: ObserverState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(self)

    async def _resolve(self, ref: AudioRef) -> None:
        self.audio_ref = ref
        try:
            self.url = await self.resolver.resolve(ref.uid)
        except Exception as e:
            logger.warning("audio_url_resolve_failed", l_item_uid=str(ref.uid), error=str(e))
            self._finish(ObserverState.expired)
            return
        self._finish(ObserverState.resolved)

    async def _poll(self, rl_item_id: int) -> None:
        backoff = self.backoff
        while True:
            await self._sleep(backoff.interval_s)
            try:
                ref = await self.api.get_audio_ref(rl_item_id)
            except Exception as e:
                # Failed polls count toward the backoff like empty ones
                logger.warning(
                    "audio_poll_failed",
                    rl_item_id=rl_item_id,
                    attempt=backoff.attempts + 1,
                    error=str(e),
                )
            else:
                if ref.is_ready:
                    await self._resolve(ref)
                    return
                if ref.is_empty:
                    # Lock released without audio: the job failed
                    self.audio_ref = ref
                    self._finish(ObserverState.idle)
                    return

            if not backoff.record_attempt():
                logger.info("audio_poll_expired", rl_item_id=rl_item_id, attempts=backoff.attempts)
                self._finish(ObserverState.expired)
                return
