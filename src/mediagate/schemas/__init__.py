"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .content import AccessResponse, ContentOut, ContentRegisterRequest, VisibilityUpdateRequest
from .reaction import (
    BulkTotalsRequest,
    BulkTotalsResponse,
    ProfileTotalResponse,
    ReactionSnapshotOut,
    ReactionToggleRequest,
)
from .unlock import UnlockGrantList, UnlockGrantOut, UnlockGrantRequest, UnlockGrantResponse

__all__ = [
    "AccessResponse", "ContentOut", "ContentRegisterRequest", "VisibilityUpdateRequest",
    "BulkTotalsRequest", "BulkTotalsResponse", "ProfileTotalResponse",
    "ReactionSnapshotOut", "ReactionToggleRequest",
    "UnlockGrantList", "UnlockGrantOut", "UnlockGrantRequest", "UnlockGrantResponse",
]
