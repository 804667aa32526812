"""Unlock grant schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from mediagate.models import UnlockGrant, UnlockScopeKind

from .common import ApiModel


class UnlockScopeIn(ApiModel):
    """``{"kind": "content", "contentId": ...}`` or ``{"kind": "gallery", "ownerProfileId": ...}``."""

    kind: Literal["content", "gallery"]
    content_id: str | None = None
    owner_profile_id: str | None = None


class UnlockGrantRequest(ApiModel):
    user_id: str = Field(..., min_length=1)
    scope: UnlockScopeIn
    price: int


class UnlockGrantOut(ApiModel):
    id: int
    user_id: str
    scope: UnlockScopeIn
    price: int
    granted_at: datetime

    @classmethod
    def from_model(cls, grant: UnlockGrant) -> UnlockGrantOut:
        if grant.scope_kind == UnlockScopeKind.CONTENT.value:
            scope = UnlockScopeIn(kind="content", content_id=grant.scope_ref)
        else:
            scope = UnlockScopeIn(kind="gallery", owner_profile_id=grant.scope_ref)
        return cls(
            id=grant.id,
            user_id=grant.user_id,
            scope=scope,
            price=grant.price,
            granted_at=grant.granted_at,
        )


class UnlockGrantResponse(ApiModel):
    grant: UnlockGrantOut
    created: bool


class UnlockGrantList(ApiModel):
    grants: list[UnlockGrantOut]
