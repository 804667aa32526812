"""content, reaction and unlock grant tables

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f0a9d2b7e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the content registry, reaction store and unlock grants."""
    op.create_table(
        "content",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("owner_profile_id", sa.String(length=128), nullable=False),
        sa.Column("owner_user_id", sa.String(length=128), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("normalized_url", sa.Text(), nullable=False),
        sa.Column("visibility", sa.String(length=16), nullable=False),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "visibility IN ('PUBLIC', 'PREMIUM', 'PRIVATE')",
            name="ck_content_visibility",
        ),
        sa.CheckConstraint("price IS NULL OR price > 0", name="ck_content_price_positive"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_profile_id", "normalized_url", name="uq_content_owner_url"),
    )
    op.create_index("ix_content_owner_profile_id", "content", ["owner_profile_id"])

    op.create_table(
        "reaction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('LIKE', 'LOVE', 'FIRE', 'WOW', 'SMILE')",
            name="ck_reaction_type",
        ),
        sa.ForeignKeyConstraint(["content_id"], ["content.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "content_id", "user_id", "type", name="uq_reaction_content_user_type"
        ),
    )
    op.create_index("ix_reaction_content_id", "reaction", ["content_id"])

    op.create_table(
        "unlock_grant",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("scope_kind", sa.String(length=16), nullable=False),
        sa.Column("scope_ref", sa.String(length=128), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("scope_kind IN ('CONTENT', 'GALLERY')", name="ck_unlock_grant_scope"),
        sa.CheckConstraint("price > 0", name="ck_unlock_grant_price_positive"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "scope_kind", "scope_ref", name="uq_unlock_grant_user_scope"
        ),
    )
    op.create_index("ix_unlock_grant_user_id", "unlock_grant", ["user_id"])


def downgrade() -> None:
    """Drop all tables created by this revision."""
    op.drop_index("ix_unlock_grant_user_id", table_name="unlock_grant")
    op.drop_table("unlock_grant")
    op.drop_index("ix_reaction_content_id", table_name="reaction")
    op.drop_table("reaction")
    op.drop_index("ix_content_owner_profile_id", table_name="content")
    op.drop_table("content")
