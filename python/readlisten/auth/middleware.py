"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Bearer token verification for the read endpoints
- get_viewer: Dependency for accessing authenticated viewer identity

The two job endpoints carry the credential in the JSON body (``jwt_token``)
and verify it themselves, so they are exempt here alongside the public paths.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from readlisten.auth.verifier import TokenVerifier, resolve_user_id
from readlisten.errors import ApiError, ApiErrorCode
from readlisten.logging import set_user_id
from readlisten.responses import error_response

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "authorization"

# Paths that don't require authentication
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# Paths that authenticate from the request body instead of the header
BODY_TOKEN_PATHS = {"/create-listening-audio", "/resign-listening-url"}


@dataclass
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        user_id: The viewer's user ID (from the token subject).
    """

    user_id: UUID


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer authentication for non-public, header-authenticated paths.

    Order of checks:
    1. Skip if public path, body-token path, or CORS preflight
    2. Extract and parse bearer token
    3. Verify token via TokenVerifier and resolve the subject
    4. Attach Viewer to request state
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        """Process the request through auth checks."""
        path = request.url.path
        if path in PUBLIC_PATHS or path in BODY_TOKEN_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        token, error_response_obj = self._extract_bearer_token(request)
        if error_response_obj:
            return error_response_obj

        try:
            user_id = resolve_user_id(self.verifier.verify(token))
        except ApiError as e:
            return self._error_json_response(e.message, e.status_code)

        request.state.viewer = Viewer(user_id=user_id)
        set_user_id(str(user_id))

        return await call_next(request)

    def _extract_bearer_token(self, request: Request) -> tuple[str, JSONResponse | None]:
        """Extract bearer token from Authorization header.

        Returns:
            Tuple of (token, error_response). Token is empty string if error.
        """
        auth_header = request.headers.get(AUTHORIZATION_HEADER)

        if not auth_header:
            logger.warning(
                "auth_failure",
                extra={"reason": "missing_header", "request_path": request.url.path},
            )
            return "", self._error_json_response("Authentication required", 401)

        # Check for Bearer prefix (case-insensitive)
        token = auth_header[7:].strip() if auth_header.lower().startswith("bearer ") else ""
        if not token:
            logger.warning(
                "auth_failure",
                extra={"reason": "invalid_header_format", "request_path": request.url.path},
            )
            return "", self._error_json_response("Invalid authorization header format", 401)

        return token, None

    def _error_json_response(self, message: str, status_code: int) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=error_response(message))


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: If viewer is not set (middleware didn't run or path is public).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer


# Type alias for dependency injection
ViewerDep = Depends(get_viewer)
