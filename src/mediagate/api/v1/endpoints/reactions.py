# src/mediagate/api/v1/endpoints/reactions.py
"""Reaction endpoints: toggle, single stats, bulk totals."""

from fastapi import APIRouter, Query

from mediagate.schemas.reaction import (
    BulkTotalsRequest,
    BulkTotalsResponse,
    ProfileTotalResponse,
    ReactionSnapshotOut,
    ReactionToggleRequest,
)
from mediagate.services.reactions import parse_reaction_type

from ..dependencies import (
    OptionalSubjectDep,
    ReactionServiceDep,
    RegistryDep,
    ensure_claimed_identity,
)

router = APIRouter(prefix="/reactions", tags=["reactions"])


@router.post("/toggle", response_model=ReactionSnapshotOut)
async def toggle_reaction(
    body: ReactionToggleRequest,
    registry: RegistryDep,
    reactions: ReactionServiceDep,
    subject: OptionalSubjectDep,
) -> ReactionSnapshotOut:
    """Flip one reaction for the caller and return fresh stats.

    Anonymous viewers send their ``guest_`` id; accounts must present a
    bearer token for the ``userId`` they react as.
    """
    # Reject bad identities and types before anything gets auto-registered.
    user_id = reactions.require_user(body.user_id)
    ensure_claimed_identity(user_id, subject, "userId")
    reaction_type = parse_reaction_type(body.type)
    content = registry.ensure(body.content_id, body.owner_profile_id, body.url)
    snapshot = reactions.toggle_reaction(content.id, user_id, reaction_type)
    return ReactionSnapshotOut.from_snapshot(snapshot)


@router.get("/stats", response_model=ReactionSnapshotOut)
async def get_stats(
    reactions: ReactionServiceDep,
    content_id: str = Query(..., alias="contentId"),
    user_id: str | None = Query(None, alias="userId"),
) -> ReactionSnapshotOut:
    """Return counters for one item and the viewer's own state."""
    return ReactionSnapshotOut.from_snapshot(reactions.read_snapshot(content_id, user_id))


@router.post("/bulk", response_model=BulkTotalsResponse)
async def bulk_totals(
    body: BulkTotalsRequest,
    reactions: ReactionServiceDep,
) -> BulkTotalsResponse:
    """Return LIKE-excluded totals for many items; unknown ids count as zero."""
    return BulkTotalsResponse(totals=reactions.get_bulk_totals(body.content_ids))


@router.get("/profile/{owner_profile_id}/total", response_model=ProfileTotalResponse)
async def profile_total(
    owner_profile_id: str,
    reactions: ReactionServiceDep,
) -> ProfileTotalResponse:
    """Return the expressive-reaction total across a profile's gallery."""
    return ProfileTotalResponse(
        owner_profile_id=owner_profile_id,
        total=reactions.get_profile_total(owner_profile_id),
    )
