# src/mediagate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import content_router, identity_router, reactions_router, unlocks_router

__all__ = [
    "content_router",
    "identity_router",
    "reactions_router",
    "unlocks_router",
]
