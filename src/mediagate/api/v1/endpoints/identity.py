# src/mediagate/api/v1/endpoints/identity.py
"""Anonymous identity issuance."""

from fastapi import APIRouter, status

from mediagate.core.security import new_anonymous_id
from mediagate.schemas.common import ApiModel

router = APIRouter(prefix="/identity", tags=["identity"])


class AnonymousIdentityResponse(ApiModel):
    user_id: str
    anonymous: bool = True


@router.post(
    "/anonymous",
    response_model=AnonymousIdentityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_anonymous_identity() -> AnonymousIdentityResponse:
    """Mint a pseudo-identity for a visitor; the client keeps it in local storage."""
    return AnonymousIdentityResponse(user_id=new_anonymous_id())
