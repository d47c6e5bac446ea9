"""API response body helpers and exception handlers.

The job endpoints speak a flat wire format consumed by the browser client:
- Error: { "error": "<message>" }
- Refresh endpoint error: { "ok": false, "error": "<message>" }

Routes that need the ``ok`` flag declare the ``ok_envelope`` dependency, which
marks the request so every handler below renders the flagged shape.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from readlisten.errors import ApiError, ApiErrorCode
from readlisten.logging import get_logger, get_request_id

logger = get_logger(__name__)


def ok_envelope(request: Request) -> None:
    """Dependency: render errors for this request as ``{ok: false, error}``."""
    request.state.ok_envelope = True


def _wants_ok_flag(request: Request) -> bool:
    if getattr(request.state, "ok_envelope", False):
        return True
    # Malformed JSON is rejected before dependencies run
    route = request.scope.get("route")
    return any(d.dependency is ok_envelope for d in getattr(route, "dependencies", ()))


def error_response(message: str, *, ok_flag: bool = False) -> dict[str, Any]:
    """Create an error body.

    Args:
        message: Human-readable error message.
        ok_flag: Whether to include ``"ok": false``.

    Returns:
        Dict with an "error" key, and "ok" when requested.
    """
    if ok_flag:
        return {"ok": False, "error": message}
    return {"error": message}


def _error_json(request: Request, status_code: int, message: str) -> JSONResponse:
    headers = {}
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return JSONResponse(
        status_code=status_code,
        content=error_response(message, ok_flag=_wants_ok_flag(request)),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError exceptions and return proper JSON response."""
    return _error_json(request, exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Handle Starlette HTTPException (404 on unknown routes, 405, ...)."""
    message = str(exc.detail) if exc.detail else "An error occurred"
    return _error_json(request, exc.status_code, message)


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request validation errors (including malformed JSON)."""
    return _error_json(request, 400, "Invalid request body")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions and return 500.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", error=str(exc), code=ApiErrorCode.E_INTERNAL.value)
    return _error_json(request, 500, "internal_server_error")
