# src/mediagate/client/__init__.py
"""Client-side helpers for consuming the reactions API."""

from .optimistic import OptimisticCache, OptimisticDelta
from .reactions_client import ReactionsClient, ReactionsClientError, ReactionView

__all__ = [
    "OptimisticCache", "OptimisticDelta",
    "ReactionsClient", "ReactionsClientError", "ReactionView",
]
