# src/mediagate/api/v1/endpoints/unlocks.py
"""Unlock grant endpoints, called after a confirmed purchase."""

from fastapi import APIRouter, HTTPException, Response, status

from mediagate.schemas.unlock import (
    UnlockGrantList,
    UnlockGrantOut,
    UnlockGrantRequest,
    UnlockGrantResponse,
)
from mediagate.services.access import UnlockScope

from ..dependencies import AccessGateDep, SubjectDep

router = APIRouter(prefix="/unlocks", tags=["unlocks"])


@router.post("/grant", response_model=UnlockGrantResponse, status_code=status.HTTP_201_CREATED)
async def grant_unlock(
    body: UnlockGrantRequest,
    response: Response,
    subject: SubjectDep,
    gate: AccessGateDep,
) -> UnlockGrantResponse:
    """Record an unlock; a repeat for a held scope returns the existing grant with 200."""
    if body.user_id != subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="userId does not match the authenticated user",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if body.scope.kind == "content":
        scope = UnlockScope.single_content(body.scope.content_id or "")
    else:
        scope = UnlockScope.entire_gallery(body.scope.owner_profile_id or "")

    grant, created = gate.grant_unlock(body.user_id, scope, body.price)
    if not created:
        response.status_code = status.HTTP_200_OK
    return UnlockGrantResponse(grant=UnlockGrantOut.from_model(grant), created=created)


@router.get("/mine", response_model=UnlockGrantList)
async def list_my_unlocks(subject: SubjectDep, gate: AccessGateDep) -> UnlockGrantList:
    """List the authenticated user's grants, oldest first."""
    return UnlockGrantList(
        grants=[UnlockGrantOut.from_model(grant) for grant in gate.list_grants(subject)]
    )
