"""Shared FastAPI dependencies for v1 endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from mediagate.core.security import decode_access_token, is_anonymous_id
from mediagate.db.session import get_db
from mediagate.services.access import AccessGate
from mediagate.services.content import ContentRegistry
from mediagate.services.reactions import ReactionService

optional_bearer = HTTPBearer(auto_error=False)

SessionDep = Annotated[Session, Depends(get_db)]


def get_content_registry(db: SessionDep) -> ContentRegistry:
    """Return a content registry bound to the request session."""
    return ContentRegistry(db)


def get_reaction_service(db: SessionDep) -> ReactionService:
    """Return a reaction service bound to the request session."""
    return ReactionService(db)


def get_access_gate(db: SessionDep) -> AccessGate:
    """Return an access gate bound to the request session."""
    return AccessGate(db)


def get_optional_subject(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer)],
) -> str | None:
    """Return the authenticated user id, ``None`` without a token, 401 on a bad one."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


def get_required_subject(
    subject: Annotated[str | None, Depends(get_optional_subject)],
) -> str:
    """Return the authenticated user id or fail with 401."""
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return subject


def ensure_claimed_identity(claimed_id: str | None, subject: str | None, field: str) -> None:
    """Reject a non-anonymous id in a request unless the bearer token carries it.

    Anonymous ids are taken at face value; they can never hold grants or own
    content. Any other id must match the token subject, otherwise anyone could
    act as an account by naming it.
    """
    claimed_id = (claimed_id or "").strip()
    if not claimed_id or is_anonymous_id(claimed_id) or claimed_id == subject:
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=f"{field} does not match the authenticated user",
        headers={"WWW-Authenticate": "Bearer"},
    )


RegistryDep = Annotated[ContentRegistry, Depends(get_content_registry)]
ReactionServiceDep = Annotated[ReactionService, Depends(get_reaction_service)]
AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]
OptionalSubjectDep = Annotated[str | None, Depends(get_optional_subject)]
SubjectDep = Annotated[str, Depends(get_required_subject)]
