"""Async HTTP client for the readlisten API.

Wraps a shared httpx.AsyncClient. The job endpoints take the access token in
the JSON body; the read endpoints take it as a Bearer header.

Usage:
    async with ReadListenClient("https://api.example.com", access_token=token) as api:
        await api.submit_listening_audio(42)
        ref = await api.get_audio_ref(42)
"""

from collections.abc import Callable
from uuid import UUID

import httpx

from readlisten.audio_ref import AudioRef
from readlisten.logging import get_logger

logger = get_logger(__name__)

# Statuses a storage URL answers with once its signature is stale
EXPIRED_URL_STATUSES = frozenset({401, 403, 410})


class ApiClientError(Exception):
    """The API answered with a non-2xx status.

    Attributes:
        status: HTTP status code
        message: The ``error`` field of the body, or the raw text
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class UrlExpiredError(Exception):
    """A download URL was rejected as expired or no longer authorized."""

    def __init__(self, url: str, status: int | None = None):
        self.url = url
        self.status = status
        super().__init__(f"url rejected ({status})")


def raise_for_expired_url(response: httpx.Response) -> None:
    """Raise UrlExpiredError for 401/403/410 responses from a storage URL."""
    if response.status_code in EXPIRED_URL_STATUSES:
        raise UrlExpiredError(str(response.request.url), response.status_code)


class ReadListenClient:
    """Typed calls for the listening endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | Callable[[], str],
        http: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ):
        """
        Args:
            base_url: API origin, e.g. "https://api.example.com".
            access_token: The user's access token, or a callable returning the
                current one (tokens are refreshed by the auth layer).
            http: Optional shared client; created (and owned) when omitted.
            timeout_s: Per-request timeout.
        """
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=10.0))

    async def __aenter__(self) -> "ReadListenClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def token(self) -> str:
        if callable(self._access_token):
            return self._access_token()
        return self._access_token

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _bearer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @staticmethod
    def _json_or_raise(response: httpx.Response) -> dict:
        if response.is_success:
            return response.json()
        try:
            message = response.json().get("error") or response.text
        except ValueError:
            message = response.text
        raise ApiClientError(response.status_code, message)

    async def submit_listening_audio(self, rl_item_id: int) -> dict:
        """Request audio generation. Returns ``{status: "processing", rl_item_id}``."""
        response = await self._http.post(
            self._url("/create-listening-audio"),
            json={"jwt_token": self.token, "rl_item_id": rl_item_id},
        )
        return self._json_or_raise(response)

    async def get_audio_ref(self, rl_item_id: int) -> AudioRef:
        response = await self._http.get(
            self._url(f"/rl_items/{rl_item_id}/listening"), headers=self._bearer()
        )
        data = self._json_or_raise(response)
        return AudioRef.from_wire(data["state"], data.get("l_item_id"))

    async def get_listening_url(self, uid: UUID | str) -> str:
        """Last known URL of an l_item (may be an expired signed URL)."""
        response = await self._http.get(self._url(f"/l_items/{uid}"), headers=self._bearer())
        return self._json_or_raise(response)["public_url"]

    async def resign_listening_url(self, uid: UUID | str) -> str:
        """Ask the API for a freshly signed URL."""
        response = await self._http.post(
            self._url("/resign-listening-url"),
            json={"jwt_token": self.token, "l_item_uid": str(uid)},
        )
        return self._json_or_raise(response)["public_url"]

    async def probe_url(self, url: str) -> bool:
        """Check a download URL without fetching the file.

        Tries HEAD first; when HEAD itself fails (some hosts refuse it) falls
        back to a 10-byte range GET. Any non-2xx answer means inaccessible.
        """
        try:
            response = await self._http.head(url)
        except httpx.HTTPError as e:
            logger.warning("url_probe_head_failed", error=str(e))
            try:
                response = await self._http.get(url, headers={"Range": "bytes=0-9"})
            except httpx.HTTPError as e2:
                logger.warning("url_probe_range_failed", error=str(e2))
                return False
        return response.is_success
