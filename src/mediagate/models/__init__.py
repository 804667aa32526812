# src/mediagate/models/__init__.py
"""SQLAlchemy models for the Media Gate service."""

from .content import Content, Visibility
from .reaction import Reaction, ReactionType
from .unlock import UnlockGrant, UnlockScopeKind

__all__ = [
    "Content", "Visibility",
    "Reaction", "ReactionType",
    "UnlockGrant", "UnlockScopeKind",
]
