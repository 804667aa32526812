"""Viewer identity helpers: anonymous tokens and signed access tokens.

Two identity strengths exist. Anonymous ids are random tokens that a browser
keeps in local storage; they are good enough to make reactions stable for a
visitor but carry nothing that proves who holds them. Authenticated ids come
from a signed JWT and are the only ones accepted for financial operations.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from mediagate.core.settings import settings


def new_anonymous_id() -> str:
    """Return a fresh pseudo-identity for an unauthenticated visitor."""
    return f"{settings.anonymous_id_prefix}{secrets.token_urlsafe(16)}"


def is_anonymous_id(user_id: str) -> bool:
    """Return True when ``user_id`` was minted by :func:`new_anonymous_id`."""
    return user_id.startswith(settings.anonymous_id_prefix)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token whose subject is ``user_id``."""
    if is_anonymous_id(user_id):
        raise ValueError("Anonymous identities cannot be issued access tokens")
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """Return the subject of a valid access token.

    Raises:
        ValueError: If the token is malformed, expired or has no subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise ValueError("Could not validate credentials") from err
    subject = payload.get("sub")
    if not subject:
        raise ValueError("Could not validate credentials")
    return str(subject)
