"""Pure ASGI CORS middleware for the browser-callable routes.

- Path-scoped: only the listening job and polling routes get CORS handling.
- Pure ASGI (not BaseHTTPMiddleware) so responses are not buffered.
- OPTIONS preflight is answered with 204 before auth or body parsing runs.
- Matching origins are reflected with credentials allowed; other origins get
  no CORS headers and the browser blocks the response.
"""

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

CORS_PATH_PREFIXES = (
    "/create-listening-audio",
    "/resign-listening-url",
    "/rl_items/",
    "/l_items/",
    "/me/",
)

ALLOW_METHODS = "GET, POST, DELETE, OPTIONS"
ALLOW_HEADERS = "Authorization, Content-Type, X-Request-ID"


class ListeningCORSMiddleware:
    """Reflect allowed origins on the listening routes."""

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: list[str],
        path_prefixes: tuple[str, ...] = CORS_PATH_PREFIXES,
    ):
        self.app = app
        self.allowed_origins = set(allowed_origins)
        self.path_prefixes = path_prefixes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefixes):
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        allowed = origin is not None and origin in self.allowed_origins

        if scope["method"] == "OPTIONS":
            # Preflight: respond immediately, no auth needed
            headers = {
                "access-control-allow-methods": ALLOW_METHODS,
                "access-control-allow-headers": ALLOW_HEADERS,
                "access-control-max-age": "600",
            }
            if allowed:
                headers["access-control-allow-origin"] = origin
                headers["access-control-allow-credentials"] = "true"
                headers["vary"] = "Origin"
            response = Response(status_code=204, headers=headers)
            await response(scope, receive, send)
            return

        if not allowed:
            await self.app(scope, receive, send)
            return

        # Wrap send to inject CORS headers on the response
        async def send_with_cors(message: dict) -> None:
            if message["type"] == "http.response.start":
                resp_headers = MutableHeaders(scope=message)
                resp_headers.append("access-control-allow-origin", origin)
                resp_headers.append("access-control-allow-credentials", "true")
                resp_headers.append("access-control-expose-headers", "X-Request-ID")
                resp_headers.append("vary", "Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)
