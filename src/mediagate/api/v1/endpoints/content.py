# src/mediagate/api/v1/endpoints/content.py
"""Content registration and access-gate endpoints."""

from fastapi import APIRouter, HTTPException, Query, Response, status

from mediagate.models import Content
from mediagate.schemas.content import (
    AccessResponse,
    ContentOut,
    ContentRegisterRequest,
    VisibilityUpdateRequest,
)
from mediagate.services.access import is_owner

from ..dependencies import (
    AccessGateDep,
    OptionalSubjectDep,
    RegistryDep,
    SessionDep,
    SubjectDep,
    ensure_claimed_identity,
)

router = APIRouter(prefix="/content", tags=["content"])


def _to_out(content: Content) -> ContentOut:
    return ContentOut(
        id=content.id,
        owner_profile_id=content.owner_profile_id,
        visibility=content.visibility,
        price=content.price,
    )


def _resolve_viewer(viewer_id: str | None, subject: str | None) -> str | None:
    """Pick the viewer for a gate check, defaulting to the token subject."""
    viewer_id = (viewer_id or "").strip() or None
    if viewer_id is None:
        return subject
    ensure_claimed_identity(viewer_id, subject, "viewerId")
    return viewer_id


@router.post("", response_model=ContentOut, status_code=status.HTTP_201_CREATED)
async def register_content(
    body: ContentRegisterRequest,
    response: Response,
    registry: RegistryDep,
    db: SessionDep,
) -> ContentOut:
    """Register a media item; repeating the call returns the same item with 200."""
    content, created = registry.register(
        owner_profile_id=body.owner_profile_id,
        url=body.url,
        visibility=body.visibility,
        price=body.price,
        raw_id=body.content_id,
        owner_user_id=body.owner_user_id,
    )
    db.commit()
    if not created:
        response.status_code = status.HTTP_200_OK
    return _to_out(content)


@router.get("/{content_id}", response_model=ContentOut)
async def get_content(content_id: str, registry: RegistryDep) -> ContentOut:
    """Return public metadata for one item."""
    return _to_out(registry.get(content_id))


@router.patch("/{content_id}/visibility", response_model=ContentOut)
async def update_visibility(
    content_id: str,
    body: VisibilityUpdateRequest,
    subject: SubjectDep,
    registry: RegistryDep,
    db: SessionDep,
) -> ContentOut:
    """Change an item's tier; only its owner may do so."""
    content = registry.get(content_id)
    if not is_owner(content, subject):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can change visibility",
        )
    content = registry.update_visibility(content_id, body.visibility, body.price)
    db.commit()
    return _to_out(content)


@router.get("/{content_id}/access", response_model=AccessResponse)
async def get_access(
    content_id: str,
    registry: RegistryDep,
    gate: AccessGateDep,
    subject: OptionalSubjectDep,
    viewer_id: str | None = Query(None, alias="viewerId"),
) -> AccessResponse:
    """Return full access with the asset URL, or a degraded view without it."""
    content = registry.get(content_id)
    viewer = _resolve_viewer(viewer_id, subject)
    decision = gate.evaluate(content, viewer, is_owner(content, subject))
    return AccessResponse.from_decision(decision)
