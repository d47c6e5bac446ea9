"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from readlisten.api.routes.health import router as health_router
from readlisten.api.routes.l_items import router as l_items_router
from readlisten.api.routes.listening import router as listening_router
from readlisten.api.routes.me import router as me_router
from readlisten.api.routes.rl_items import router as rl_items_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(listening_router, tags=["listening"])
    api_router.include_router(rl_items_router, tags=["rl_items"])
    api_router.include_router(l_items_router, tags=["l_items"])
    api_router.include_router(me_router, tags=["user"])
    return api_router


__all__ = ["create_api_router"]
