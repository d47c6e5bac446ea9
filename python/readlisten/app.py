"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, CORS, request-id
middleware, and routes.

Token Verification:
- All environments verify Supabase access tokens with the shared HS256 secret
- One verifier instance is shared by AuthMiddleware (Bearer routes) and the
  job routes that carry the token in the body

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. ListeningCORSMiddleware (answers preflight, adds CORS headers)
3. AuthMiddleware (verifies Bearer token, sets viewer)
4. Route handler
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from readlisten.api.routes import create_api_router
from readlisten.auth.middleware import AuthMiddleware
from readlisten.auth.verifier import SharedSecretVerifier, TokenVerifier
from readlisten.config import get_settings
from readlisten.errors import ApiError
from readlisten.logging import configure_logging, get_logger
from readlisten.middleware.cors import ListeningCORSMiddleware
from readlisten.middleware.request_id import RequestIDMiddleware
from readlisten.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from readlisten.storage.client import StorageClientBase, get_storage_client

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_token_verifier() -> TokenVerifier:
    """Create the token verifier from SUPABASE_JWT_SECRET."""
    settings = get_settings()
    return SharedSecretVerifier(settings.supabase_jwt_secret)  # type: ignore[arg-type]


def create_app(
    token_verifier: TokenVerifier | None = None,
    storage: StorageClientBase | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        token_verifier: Optional custom token verifier (for testing).
        storage: Optional storage client (for testing); defaults to the
            configured Supabase client, or the in-memory fake without credentials.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="readlisten API",
        description="Listening audio generation for reading/listening study items",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.token_verifier = token_verifier or create_token_verifier()
    app.state.storage = storage or get_storage_client(settings)

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Use router factory to avoid import-time settings loading
    app.include_router(create_api_router())

    app.add_middleware(AuthMiddleware, verifier=app.state.token_verifier)

    # Must be added AFTER auth middleware so preflights never reach it.
    # Installed even with no origins so preflights still get 204.
    cors_origins = settings.cors_origin_list
    app.add_middleware(ListeningCORSMiddleware, allowed_origins=cors_origins)
    logger.info("cors_middleware_enabled", origins=cors_origins)

    logger.info(
        "app_created",
        env=settings.readlisten_env.value,
        storage=type(app.state.storage).__name__,
        storage_public=settings.storage_public,
    )
    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
