"""Tests for the audio job observer.

The observer's sleep is replaced with a recorder so the whole backoff
schedule runs instantly.
"""

import asyncio
from uuid import uuid4

from readlisten.audio_ref import AudioRef
from readlisten.client.api import ApiClientError
from readlisten.client.cache import SignedUrlCache
from readlisten.client.observer import AudioJobObserver, ObserverState
from readlisten.client.urls import ListeningUrlResolver
from tests.helpers import FakeListeningApi


class SleepRecorder:
    def __init__(self):
        self.intervals: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.intervals.append(seconds)


def _observer(api, **kwargs) -> tuple[AudioJobObserver, SleepRecorder, list[ObserverState]]:
    sleep = SleepRecorder()
    changes: list[ObserverState] = []
    observer = AudioJobObserver(
        api, sleep=sleep, on_change=lambda o: changes.append(o.state), **kwargs
    )
    return observer, sleep, changes


class TestInitialState:
    async def test_empty_stays_idle(self):
        api = FakeListeningApi(refs=[AudioRef.empty()])
        observer, _, changes = _observer(api)

        observer.watch(1, AudioRef.empty())

        assert observer.state is ObserverState.idle
        assert not observer.active
        assert await observer.wait() is ObserverState.idle
        assert api.poll_calls == 0
        assert changes == []

    async def test_ready_resolves_without_polling(self):
        api = FakeListeningApi(refs=[AudioRef.empty()])
        observer, sleep, changes = _observer(api)

        observer.watch(1, AudioRef.ready(uuid4()))

        assert await observer.wait() is ObserverState.resolved
        assert observer.url == api.url
        assert api.poll_calls == 0
        assert sleep.intervals == []
        assert changes == [ObserverState.resolved]

    async def test_uses_given_resolver_and_cache(self):
        api = FakeListeningApi(refs=[AudioRef.empty()])
        uid = uuid4()
        cache = SignedUrlCache()
        cache.put(str(uid), "https://cdn.test/cached")
        resolver = ListeningUrlResolver(api, cache=cache)
        observer, _, _ = _observer(api, resolver=resolver)

        observer.watch(1, AudioRef.ready(uid))

        assert await observer.wait() is ObserverState.resolved
        assert observer.resolver is resolver
        assert observer.url == "https://cdn.test/cached"
        assert api.url_calls == 0


class TestPolling:
    async def test_locked_polls_until_ready(self):
        uid = uuid4()
        api = FakeListeningApi(
            refs=[AudioRef.locked(), AudioRef.locked(), AudioRef.ready(uid)]
        )
        observer, sleep, changes = _observer(api)

        observer.watch(1, AudioRef.locked())
        assert observer.state is ObserverState.polling

        assert await observer.wait() is ObserverState.resolved
        assert observer.audio_ref == AudioRef.ready(uid)
        assert observer.url == api.url
        assert sleep.intervals == [5.0, 5.0, 5.0]
        assert changes == [ObserverState.resolved]

    async def test_gives_up_after_schedule(self):
        api = FakeListeningApi(refs=[AudioRef.locked()])
        observer, sleep, changes = _observer(api)

        observer.watch(1, AudioRef.locked())

        assert await observer.wait() is ObserverState.expired
        assert api.poll_calls == 25
        assert sleep.intervals == [5.0] * 5 + [10.0] * 5 + [20.0] * 5 + [40.0] * 5 + [80.0] * 5
        assert changes == [ObserverState.expired]

    async def test_failed_polls_count_as_attempts(self):
        api = FakeListeningApi(refs=[ApiClientError(503, "unavailable")])
        observer, _, _ = _observer(api)

        observer.watch(1, AudioRef.locked())

        assert await observer.wait() is ObserverState.expired
        assert api.poll_calls == 25

    async def test_recovers_after_transient_poll_error(self):
        uid = uuid4()
        api = FakeListeningApi(
            refs=[ApiClientError(500, "oops"), AudioRef.locked(), AudioRef.ready(uid)]
        )
        observer, sleep, _ = _observer(api)

        observer.watch(1, AudioRef.locked())

        assert await observer.wait() is ObserverState.resolved
        assert len(sleep.intervals) == 3

    async def test_lock_released_means_job_failed(self):
        api = FakeListeningApi(refs=[AudioRef.locked(), AudioRef.empty()])
        observer, _, changes = _observer(api)

        observer.watch(1, AudioRef.locked())

        assert await observer.wait() is ObserverState.idle
        assert observer.audio_ref.is_empty
        assert changes == [ObserverState.idle]

    async def test_resolve_failure_expires(self):
        api = FakeListeningApi(refs=[AudioRef.ready(uuid4())])
        api.url_error = ApiClientError(410, "l_item is deleted")
        observer, _, _ = _observer(api)

        observer.watch(1, AudioRef.locked())

        assert await observer.wait() is ObserverState.expired
        assert observer.url is None


class TestTeardown:
    async def test_cancel_stops_polling_without_callbacks(self):
        api = FakeListeningApi(refs=[AudioRef.locked()])
        gate = asyncio.Event()

        async def blocking_sleep(seconds: float) -> None:
            await gate.wait()

        changes: list[ObserverState] = []
        observer = AudioJobObserver(
            api, sleep=blocking_sleep, on_change=lambda o: changes.append(o.state)
        )

        observer.watch(1, AudioRef.locked())
        await asyncio.sleep(0)
        observer.cancel()
        gate.set()
        await asyncio.sleep(0)

        assert observer.state is ObserverState.idle
        assert not observer.active
        assert api.poll_calls == 0
        assert changes == []

    async def test_aclose_waits_for_task(self):
        api = FakeListeningApi(refs=[AudioRef.locked()])
        gate = asyncio.Event()

        async def blocking_sleep(seconds: float) -> None:
            await gate.wait()

        observer = AudioJobObserver(api, sleep=blocking_sleep)
        observer.watch(1, AudioRef.locked())

        await observer.aclose()

        assert not observer.active
        assert observer.state is ObserverState.idle

    async def test_watching_another_item_replaces_previous(self):
        uid = uuid4()
        api = FakeListeningApi(refs=[AudioRef.ready(uid)])
        gate = asyncio.Event()
        watched: list[float] = []

        async def sleep(seconds: float) -> None:
            watched.append(seconds)
            if len(watched) == 1:
                await gate.wait()

        observer = AudioJobObserver(api, sleep=sleep)
        observer.watch(1, AudioRef.locked())
        await asyncio.sleep(0)

        observer.watch(2, AudioRef.ready(uid))

        assert observer.rl_item_id == 2
        assert await observer.wait() is ObserverState.resolved
        assert api.poll_calls == 0
