"""Authentication module.

This module provides:
- Token verification (HS256 shared-secret verifier)
- Auth middleware for the Bearer-authenticated routes
- Request state with viewer identity
"""

from readlisten.auth.middleware import AuthMiddleware, Viewer, get_viewer
from readlisten.auth.verifier import (
    SharedSecretVerifier,
    TokenVerifier,
    authenticate,
    resolve_user_id,
)

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "SharedSecretVerifier",
    "TokenVerifier",
    "authenticate",
    "resolve_user_id",
]
