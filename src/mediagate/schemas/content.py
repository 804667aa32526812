"""Content registration and access schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from mediagate.services.access import AccessDecision

from .common import ApiModel


class ContentRegisterRequest(ApiModel):
    owner_profile_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    content_id: str | None = Field(None, description="Explicit id; derived when omitted")
    owner_user_id: str | None = None
    visibility: str = "PUBLIC"
    price: int | None = None


class VisibilityUpdateRequest(ApiModel):
    visibility: str
    price: int | None = None


class ContentOut(ApiModel):
    """Public metadata of a media item; never includes the asset URL."""

    id: str
    owner_profile_id: str
    visibility: str
    price: int | None = None


class UnlockAffordance(ApiModel):
    """What a degraded viewer may buy to see the item."""

    content_id: str
    owner_profile_id: str
    price: int | None = None


class AccessResponse(ApiModel):
    access: Literal["full", "degraded"]
    content_id: str
    visibility: str
    price: int | None = None
    url: str | None = None
    unlock: UnlockAffordance | None = None

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> AccessResponse:
        unlock = None
        if decision.unlockable:
            unlock = UnlockAffordance(
                content_id=decision.content_id,
                owner_profile_id=decision.owner_profile_id,
                price=decision.price,
            )
        return cls(
            access=decision.access.value,
            content_id=decision.content_id,
            visibility=decision.visibility,
            price=decision.price,
            url=decision.url,
            unlock=unlock,
        )
