"""Models recording purchased access to premium media."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mediagate.db.session import Base
from mediagate.db.time import utcnow


class UnlockScopeKind(str, enum.Enum):
    """What an unlock grant covers."""

    CONTENT = "CONTENT"  # scope_ref is a content id
    GALLERY = "GALLERY"  # scope_ref is an owner profile id


class UnlockGrant(Base):
    """Immutable proof that a user bought access to an item or a whole gallery."""

    __tablename__ = "unlock_grant"
    __table_args__ = (
        # Payment webhooks retry; a second confirmation must not create a second grant.
        UniqueConstraint("user_id", "scope_kind", "scope_ref", name="uq_unlock_grant_user_scope"),
        CheckConstraint("scope_kind IN ('CONTENT', 'GALLERY')", name="ck_unlock_grant_scope"),
        CheckConstraint("price > 0", name="ck_unlock_grant_price_positive"),
        Index("ix_unlock_grant_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scope_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    scope_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
