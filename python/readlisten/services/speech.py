"""Speech synthesis gateway (OpenAI text-to-speech).

Request:
    POST {OPENAI_BASE_URL}/audio/speech
    Authorization: Bearer <key>
    {"model": ..., "voice": ..., "input": <text>, "response_format": ...}

Response: raw audio bytes in the requested format.

Any non-2xx response (or transport failure) raises SpeechSynthesisError with
the upstream status and body, so the worker can log it and roll back.
"""

from typing import Protocol

import httpx

from readlisten.config import Settings, get_settings
from readlisten.logging import get_logger

logger = get_logger(__name__)

# Upstream error bodies are truncated to this many characters in logs/errors
MAX_ERROR_BODY_CHARS = 2000


class SpeechSynthesisError(Exception):
    """The speech gateway refused or failed the request.

    Attributes:
        status: Upstream HTTP status (None for transport failures)
        body: Upstream response body, truncated
    """

    def __init__(self, status: int | None, body: str):
        self.status = status
        self.body = body[:MAX_ERROR_BODY_CHARS]
        super().__init__(f"speech synthesis failed: {status} {self.body}")


class SpeechGateway(Protocol):
    def synthesize(self, text: str) -> bytes: ...


class OpenAISpeechGateway:
    """Synchronous OpenAI TTS client used by the worker."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini-tts",
        voice: str = "coral",
        response_format: str = "aac",
        timeout_s: float = 120.0,
        client: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/audio/speech"
        self.model = model
        self.voice = voice
        self.response_format = response_format
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "OpenAISpeechGateway":
        if settings is None:
            settings = get_settings()
        return cls(
            settings.openai_api_key or "",
            base_url=settings.openai_base_url,
            model=settings.tts_model,
            voice=settings.tts_voice,
            response_format=settings.tts_format,
            timeout_s=settings.tts_timeout_s,
        )

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_request_body(self, text: str) -> dict[str, str]:
        return {
            "model": self.model,
            "voice": self.voice,
            "input": text,
            "response_format": self.response_format,
        }

    def synthesize(self, text: str) -> bytes:
        """Convert text to audio bytes.

        Raises:
            SpeechSynthesisError: Non-success status or transport failure.
        """
        if self._client is not None:
            return self._post(self._client, text)
        with httpx.Client() as client:
            return self._post(client, text)

    def _post(self, client: httpx.Client, text: str) -> bytes:
        try:
            response = client.post(
                self._url,
                headers=self._build_headers(),
                json=self._build_request_body(text),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("speech_synthesis_transport_error", error=str(e))
            raise SpeechSynthesisError(None, str(e)) from e

        if not response.is_success:
            raise SpeechSynthesisError(response.status_code, response.text)

        logger.info(
            "speech_synthesis_completed",
            model=self.model,
            voice=self.voice,
            bytes=len(response.content),
            provider_request_id=response.headers.get("x-request-id"),
        )
        return response.content
