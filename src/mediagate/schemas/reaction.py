"""Reaction-related Pydantic schemas."""

from __future__ import annotations

from pydantic import Field

from mediagate.models import ReactionType
from mediagate.services.reactions import ReactionSnapshot

from .common import ApiModel


class ReactionToggleRequest(ApiModel):
    """Body of a toggle call; identify the item by id or by owner and URL."""

    content_id: str | None = Field(None, description="Canonical content id")
    owner_profile_id: str | None = Field(None, description="Owning profile, with url")
    url: str | None = Field(None, description="Asset URL, with ownerProfileId")
    user_id: str = Field("", description="Authenticated or anonymous viewer id")
    # Parsed by the service so an unknown type is a 400, not a schema error.
    type: str = Field(..., description="LIKE, LOVE, FIRE, WOW or SMILE")


class ReactionStatsOut(ApiModel):
    counts: dict[ReactionType, int]
    total: int


class UserReactionStateOut(ApiModel):
    user_has_liked: bool
    user_reaction_types: list[ReactionType]


class ReactionSnapshotOut(ApiModel):
    """Stats and the caller's own reaction state for one item."""

    content_id: str
    stats: ReactionStatsOut
    user_state: UserReactionStateOut

    @classmethod
    def from_snapshot(cls, snapshot: ReactionSnapshot) -> ReactionSnapshotOut:
        return cls(
            content_id=snapshot.content_id,
            stats=ReactionStatsOut(
                counts=dict(snapshot.stats.counts),
                total=snapshot.stats.total,
            ),
            user_state=UserReactionStateOut(
                user_has_liked=snapshot.user_state.user_has_liked,
                user_reaction_types=list(snapshot.user_state.user_reaction_types),
            ),
        )


class BulkTotalsRequest(ApiModel):
    content_ids: list[str] = Field(default_factory=list)


class BulkTotalsResponse(ApiModel):
    totals: dict[str, int]


class ProfileTotalResponse(ApiModel):
    owner_profile_id: str
    total: int
