"""
Memeflix Backend — Vote Service (Vote Ledger)
==============================================

What:  Records, flips and removes a user's vote on a meme while keeping the
       meme's upvote/downvote counters equal to the ledger.
Why:   The counters are denormalized onto `memes` so listings can sort by
       score without aggregating `votes`. That only stays correct if the
       ledger row and the counters always change together.
How:   One transaction per call:

    existing vote   ledger change            counter change            result
    ─────────────   ──────────────────────   ───────────────────────   ────────
    none            INSERT (user, meme, d)   d += 1                    recorded
    same as d       DELETE row               d -= 1                    removed
    opposite        UPDATE vote_type = d     old -= 1, d += 1 (one     changed
                                             UPDATE statement)

    The read of the existing row happens after BEGIN (see database.py), so
    the decision and both writes commit or roll back as a unit.

Failure mapping:
    FOREIGN KEY violation on insert → NotFoundError (vote on a missing meme)
    any other database failure     → rollback, DatabaseError
"""

import logging
from typing import Dict, List

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.exceptions import DatabaseError, MemeflixError, NotFoundError, ValidationError
from memeflix.models import VOTE_TYPES, Meme, Vote
from memeflix.models.meme import utcnow
from memeflix.schemas.meme import UserVote, VoteResponse

logger = logging.getLogger(__name__)

ACTION_MESSAGES = {
    "recorded": "Vote recorded",
    "removed": "Vote removed",
    "changed": "Vote changed",
}


def _counter_deltas(previous: str | None, requested: str) -> Dict[str, int]:
    """Per-direction counter adjustments for a vote transition."""
    if previous is None:
        return {requested: 1}
    if previous == requested:
        return {requested: -1}
    return {previous: -1, requested: 1}


def _is_foreign_key_violation(error: IntegrityError) -> bool:
    return "FOREIGN KEY" in str(error.orig).upper()


class VoteService:
    """
    Business logic layer for the vote ledger.

    cast_vote() owns its transaction: it commits on success and rolls back
    on any failure, independently of the request-scoped session handling.
    """

    async def cast_vote(
        self,
        db: AsyncSession,
        user_id: int,
        meme_id: int,
        direction: str,
    ) -> VoteResponse:
        """
        Applies one vote request.

        Args:
            db: Async database session (no transaction in progress)
            user_id: Authenticated voter
            meme_id: Target meme
            direction: "up" or "down"

        Returns:
            VoteResponse with the action taken and the post-commit counters

        Raises:
            ValidationError: direction is not up/down
            NotFoundError: meme does not exist
            DatabaseError: transaction failed and was rolled back
        """
        if direction not in VOTE_TYPES:
            raise ValidationError(message=f"Invalid vote type '{direction}'", field="vote_type")

        try:
            existing = (
                await db.execute(
                    select(Vote).where(Vote.user_id == user_id, Vote.meme_id == meme_id)
                )
            ).scalar_one_or_none()
            previous = existing.vote_type if existing is not None else None

            if existing is None:
                db.add(Vote(user_id=user_id, meme_id=meme_id, vote_type=direction))
                action, user_vote = "recorded", direction
            elif previous == direction:
                await db.delete(existing)
                action, user_vote = "removed", None
            else:
                existing.vote_type = direction
                existing.voted_at = utcnow()
                action, user_vote = "changed", direction
            # Flush before touching counters so a missing meme fails on the
            # ledger insert and the counter UPDATE never runs.
            await db.flush()

            deltas = _counter_deltas(previous, direction)
            await db.execute(
                update(Meme)
                .where(Meme.id == meme_id)
                .values(
                    upvotes=Meme.upvotes + deltas.get("up", 0),
                    downvotes=Meme.downvotes + deltas.get("down", 0),
                )
                .execution_options(synchronize_session=False)
            )
            upvotes, downvotes = (
                await db.execute(
                    select(Meme.upvotes, Meme.downvotes).where(Meme.id == meme_id)
                )
            ).one()

            await db.commit()

        except IntegrityError as e:
            await db.rollback()
            if _is_foreign_key_violation(e):
                raise NotFoundError(resource="meme", resource_id=meme_id)
            logger.error("Integrity error casting vote: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to record vote. Please try again.")
        except MemeflixError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "Vote transaction failed (user=%s meme=%s %s): %s",
                user_id, meme_id, direction, str(e), exc_info=True,
            )
            raise DatabaseError(message="Failed to record vote. Please try again.")

        logger.info(
            "Vote %s: user=%s meme=%s %s → up=%d down=%d",
            action, user_id, meme_id, direction, upvotes, downvotes,
        )
        return VoteResponse(
            message=ACTION_MESSAGES[action],
            action=action,
            meme_id=meme_id,
            upvotes=upvotes,
            downvotes=downvotes,
            score=upvotes - downvotes,
            user_vote=user_vote,
        )

    async def list_user_votes(self, db: AsyncSession, user_id: int) -> List[UserVote]:
        try:
            result = await db.execute(
                select(Vote).where(Vote.user_id == user_id).order_by(Vote.voted_at.desc())
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing votes for user %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve your votes.")
        return [UserVote.model_validate(vote) for vote in result.scalars().all()]

    async def reconcile_counters(self, db: AsyncSession) -> int:
        """
        Recomputes every meme's counters from the ledger.

        What:  Offline repair for counters changed outside cast_vote (manual
               SQL, restored backups). Never called by request handlers.
        Returns:
            Number of memes whose counters were corrected.
        """
        up_count = (
            select(func.count())
            .where(Vote.meme_id == Meme.id, Vote.vote_type == "up")
            .correlate(Meme)
            .scalar_subquery()
        )
        down_count = (
            select(func.count())
            .where(Vote.meme_id == Meme.id, Vote.vote_type == "down")
            .correlate(Meme)
            .scalar_subquery()
        )
        drifted = or_(Meme.upvotes != up_count, Meme.downvotes != down_count)

        try:
            drifted_ids = list(
                (await db.execute(select(Meme.id).where(drifted))).scalars().all()
            )
            if drifted_ids:
                await db.execute(
                    update(Meme)
                    .where(Meme.id.in_(drifted_ids))
                    .values(upvotes=up_count, downvotes=down_count)
                    .execution_options(synchronize_session=False)
                )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Counter reconciliation failed: %s", str(e), exc_info=True)
            raise DatabaseError(message="Counter reconciliation failed.")

        if drifted_ids:
            logger.warning("Reconciled vote counters for %d meme(s): %s", len(drifted_ids), drifted_ids)
        else:
            logger.info("Vote counters already consistent")
        return len(drifted_ids)


vote_service = VoteService()
