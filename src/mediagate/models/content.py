"""SQLAlchemy model for registered media items."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mediagate.db.session import Base
from mediagate.db.time import utcnow


class Visibility(str, enum.Enum):
    """Visibility tier of a media item."""

    PUBLIC = "PUBLIC"
    PREMIUM = "PREMIUM"
    PRIVATE = "PRIVATE"


class Content(Base):
    """A media item known to the service, keyed by its canonical content id.

    The id is either supplied by a trusted caller or derived from the owning
    profile and the normalized source URL, so the same asset always lands on
    the same row.
    """

    __tablename__ = "content"
    __table_args__ = (
        CheckConstraint(
            "visibility IN ('PUBLIC', 'PREMIUM', 'PRIVATE')",
            name="ck_content_visibility",
        ),
        CheckConstraint("price IS NULL OR price > 0", name="ck_content_price_positive"),
        UniqueConstraint("owner_profile_id", "normalized_url", name="uq_content_owner_url"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_profile_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # Account allowed to see PRIVATE items; null when the profile is unclaimed.
    owner_user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Visibility.PUBLIC.value,
    )
    # Whole currency units; required for PREMIUM items.
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def tier(self) -> Visibility:
        """Return the visibility as an enum member."""
        return Visibility(self.visibility)
