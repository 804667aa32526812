# src/mediagate/services/__init__.py
"""Business logic services for the Media Gate application."""

from .access import AccessDecision, AccessGate, AccessLevel, UnlockScope
from .content import ContentRegistry
from .identity import normalize_url, resolve_content_id
from .reactions import ReactionService, ReactionSnapshot, ReactionStats, UserReactionState

__all__ = [
    "AccessDecision", "AccessGate", "AccessLevel", "UnlockScope",
    "ContentRegistry",
    "normalize_url", "resolve_content_id",
    "ReactionService", "ReactionSnapshot", "ReactionStats", "UserReactionState",
]
