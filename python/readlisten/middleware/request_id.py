"""X-Request-ID middleware for request correlation and tracing.

This middleware:
- Accepts a well-formed incoming X-Request-ID or generates a UUID4
- Exposes the ID on request.state and in the logging context
- Echoes the ID in response headers
- Logs one access entry per request once the response has started

Middleware Ordering:
- Added last so it runs first (outermost), wrapping auth and CORS, so every
  response, auth failures and preflights included, carries X-Request-ID.
"""

import re
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from readlisten.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Alphanumeric, dots, hyphens, underscores; UUIDs match this too
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def normalize_request_id(value: str | None) -> str | None:
    """Return the canonical form of a client-supplied ID, or None if unusable.

    UUIDs are lowercased to their hyphenated form; other IDs are kept as-is.
    """
    if not value or len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return None
    if not VALID_REQUEST_ID_PATTERN.match(value):
        return None
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return value
    # Only the hyphenated 36-char spelling is treated as a UUID
    return str(parsed) if len(value) == 36 else value


def generate_request_id() -> str:
    """Generate a new UUID v4 request ID."""
    return str(uuid.uuid4())


class RequestIDMiddleware:
    """Pure ASGI middleware for X-Request-ID handling and access logging.

    Args:
        app: The ASGI application.
        log_requests: If True, log access entries for each request.
    """

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        self.app = app
        self.log_requests = log_requests

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.monotonic()
        request_id = normalize_request_id(
            Headers(scope=scope).get(REQUEST_ID_HEADER)
        ) or generate_request_id()

        scope.setdefault("state", {})["request_id"] = request_id
        set_request_context(request_id, path=scope["path"], method=scope["method"])

        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:
            logger.exception("request_failed")
            raise
        else:
            if self.log_requests:
                viewer = scope["state"].get("viewer")
                logger.info(
                    "request_completed",
                    status_code=status_code,
                    user_id=str(viewer.user_id) if viewer else None,
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )
        finally:
            clear_request_context()
