"""Async client SDK for the listening audio pipeline.

Provides:
- ReadListenClient: httpx-based calls for submit / poll / URL endpoints
- AudioJobObserver: polls a job with capped backoff until audio is ready
- ListeningUrlResolver: cached download URLs with refresh-once-on-expiry
- PollBackoff, SignedUrlCache, SingleFlight: the building blocks
"""

from readlisten.client.api import (
    ApiClientError,
    ReadListenClient,
    UrlExpiredError,
    raise_for_expired_url,
)
from readlisten.client.backoff import PollBackoff
from readlisten.client.cache import SignedUrlCache, SingleFlight
from readlisten.client.observer import AudioJobObserver, ObserverState
from readlisten.client.urls import ListeningUrlResolver

__all__ = [
    "ApiClientError",
    "AudioJobObserver",
    "ListeningUrlResolver",
    "ObserverState",
    "PollBackoff",
    "ReadListenClient",
    "SignedUrlCache",
    "SingleFlight",
    "UrlExpiredError",
    "raise_for_expired_url",
]
