"""Models capturing per-user reactions on media items."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from mediagate.db.session import Base
from mediagate.db.time import utcnow


class ReactionType(str, enum.Enum):
    """Fixed reaction taxonomy. LIKE is the base reaction, the rest are expressive."""

    LIKE = "LIKE"
    LOVE = "LOVE"
    FIRE = "FIRE"
    WOW = "WOW"
    SMILE = "SMILE"

    @property
    def is_expressive(self) -> bool:
        return self is not ReactionType.LIKE


class Reaction(Base):
    """One user's reaction of one type on one media item.

    Rows are only ever inserted or deleted; a toggle never updates in place.
    """

    __tablename__ = "reaction"
    __table_args__ = (
        # Enforced by the database so concurrent toggles cannot both insert.
        UniqueConstraint("content_id", "user_id", "type", name="uq_reaction_content_user_type"),
        CheckConstraint(
            "type IN ('LIKE', 'LOVE', 'FIRE', 'WOW', 'SMILE')",
            name="ck_reaction_type",
        ),
        Index("ix_reaction_content_id", "content_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("content.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
