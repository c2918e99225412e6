"""
Memeflix Backend — Meme & Tag SQLAlchemy Models
================================================

What:  ORM models for the catalogue: `memes`, `tags` and the `meme_tags`
       association table.
Why:   Maps Python objects to rows for type-safe queries in the Query Layer.
Who:   Queried by the meme/tag services; written by the seed loader.

Table Design Rationale:
    - Integer primary keys: ids appear in public URLs (/api/memes/5/upvote)
    - filename UNIQUE: the seed loader keys idempotency on it and /media
      serves by it
    - type CHECK: only image | gif | video are renderable by the player
    - upvotes / downvotes: denormalized counters, written exclusively by the
      vote ledger transaction; score (upvotes - downvotes) is derived
    - Tag.name uses NOCASE collation so "Cats" and "cats" cannot coexist

    Index on uploaded_at DESC:
        Optimizes the default listing ("newest first").
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from memeflix.database import Base

MEDIA_TYPES = ("image", "gif", "video")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Association Table ─────────────────────────────────────────────────────
# Plain Table (no mapped class): rows carry no data beyond the pair.
meme_tags = Table(
    "meme_tags",
    Base.metadata,
    Column("meme_id", Integer, ForeignKey("memes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_meme_tags_tag_id", "tag_id"),
)


class Meme(Base):
    """
    A single piece of media in the catalogue.

    Lifecycle:
        1. Inserted by the seed loader with zero counters
        2. Counters mutated only by VoteService.cast_vote
        3. Deleting a meme cascades to votes, favorites, views and tag links
    """

    __tablename__ = "memes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    upvotes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    downvotes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    __table_args__ = (
        CheckConstraint("type IN ('image', 'gif', 'video')", name="ck_memes_type"),
        CheckConstraint("upvotes >= 0", name="ck_memes_upvotes_non_negative"),
        CheckConstraint("downvotes >= 0", name="ck_memes_downvotes_non_negative"),
        Index("idx_memes_uploaded_at", uploaded_at.desc()),
    )

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes

    def __repr__(self) -> str:
        return (
            f"<Meme(id={self.id}, filename='{self.filename}', "
            f"up={self.upvotes}, down={self.downvotes})>"
        )


class Tag(Base):
    """A free-form label; matched case-insensitively, stored as first seen."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(100, collation="NOCASE"), nullable=False, unique=True
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
