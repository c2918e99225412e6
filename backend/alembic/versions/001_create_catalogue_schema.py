"""Create catalogue, account and activity tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: memes, tags, meme_tags, users, votes, favorites,
       view_events.
How:   Every activity table references users and memes with
       ON DELETE CASCADE; votes and favorites use (user_id, meme_id) as
       their primary key.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _user_fk() -> sa.Column:
    return sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def _meme_fk() -> sa.Column:
    return sa.Column("meme_id", sa.Integer, sa.ForeignKey("memes.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    # ── Catalogue ─────────────────────────────────────────────────────────
    op.create_table(
        "memes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        _timestamp("uploaded_at"),
        sa.Column("upvotes", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("downvotes", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.UniqueConstraint("filename"),
        sa.CheckConstraint("type IN ('image', 'gif', 'video')", name="ck_memes_type"),
        sa.CheckConstraint("upvotes >= 0", name="ck_memes_upvotes_non_negative"),
        sa.CheckConstraint("downvotes >= 0", name="ck_memes_downvotes_non_negative"),
    )
    op.create_index("idx_memes_uploaded_at", "memes", [sa.text("uploaded_at DESC")])

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100, collation="NOCASE"), nullable=False),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "meme_tags",
        sa.Column("meme_id", sa.Integer, sa.ForeignKey("memes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("idx_meme_tags_tag_id", "meme_tags", ["tag_id"])

    # ── Accounts ──────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    # ── Activity ──────────────────────────────────────────────────────────
    op.create_table(
        "votes",
        _user_fk(),
        _meme_fk(),
        sa.Column("vote_type", sa.String(4), nullable=False),
        _timestamp("voted_at"),
        sa.PrimaryKeyConstraint("user_id", "meme_id"),
        sa.CheckConstraint("vote_type IN ('up', 'down')", name="ck_votes_vote_type"),
    )
    op.create_index("idx_votes_meme_id", "votes", ["meme_id"])

    op.create_table(
        "favorites",
        _user_fk(),
        _meme_fk(),
        _timestamp("added_at"),
        sa.PrimaryKeyConstraint("user_id", "meme_id"),
    )

    op.create_table(
        "view_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _user_fk(),
        _meme_fk(),
        _timestamp("viewed_at"),
    )
    op.create_index(
        "idx_view_events_user_viewed",
        "view_events",
        ["user_id", sa.text("viewed_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_view_events_user_viewed", table_name="view_events")
    op.drop_table("view_events")
    op.drop_table("favorites")
    op.drop_index("idx_votes_meme_id", table_name="votes")
    op.drop_table("votes")
    op.drop_table("users")
    op.drop_index("idx_meme_tags_tag_id", table_name="meme_tags")
    op.drop_table("meme_tags")
    op.drop_table("tags")
    op.drop_index("idx_memes_uploaded_at", table_name="memes")
    op.drop_table("memes")
