"""
Memeflix Backend — Per-User Activity Models
============================================

What:  The three tables that relate a user to a meme:
       - `votes`        the vote ledger, one row per (user, meme)
       - `favorites`    a set of (user, meme) pairs
       - `view_events`  an append-only log; repeats are expected
Why:   Votes and favorites use the pair as their composite primary key, so
       "at most one row per pair" is enforced by the database rather than
       by application checks.

Every foreign key is ON DELETE CASCADE; a vote, favorite or view on a
missing meme fails with an IntegrityError, which the services translate
into a 404.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from memeflix.database import Base
from memeflix.models.meme import utcnow

VOTE_TYPES = ("up", "down")


class Vote(Base):
    """
    One user's current opinion of one meme.

    The row and the meme's counters are only ever changed together, inside
    VoteService.cast_vote.
    """

    __tablename__ = "votes"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    meme_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("memes.id", ondelete="CASCADE"), primary_key=True
    )
    vote_type: Mapped[str] = mapped_column(String(4), nullable=False)
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("vote_type IN ('up', 'down')", name="ck_votes_vote_type"),
        Index("idx_votes_meme_id", "meme_id"),
    )

    def __repr__(self) -> str:
        return f"<Vote(user_id={self.user_id}, meme_id={self.meme_id}, type='{self.vote_type}')>"


class Favorite(Base):
    __tablename__ = "favorites"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    meme_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("memes.id", ondelete="CASCADE"), primary_key=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Favorite(user_id={self.user_id}, meme_id={self.meme_id})>"


class ViewEvent(Base):
    """A single "user opened meme" event. Never updated, never deleted directly."""

    __tablename__ = "view_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    meme_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("memes.id", ondelete="CASCADE"), nullable=False
    )
    # Python-side default keeps microseconds, so two opens in the same
    # second still order correctly in the history view.
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_view_events_user_viewed", "user_id", viewed_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<ViewEvent(user_id={self.user_id}, meme_id={self.meme_id}, at='{self.viewed_at}')>"
