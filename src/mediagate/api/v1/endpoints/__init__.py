# src/mediagate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .content import router as content_router
from .identity import router as identity_router
from .reactions import router as reactions_router
from .unlocks import router as unlocks_router

__all__ = [
    "content_router",
    "identity_router",
    "reactions_router",
    "unlocks_router",
]
