"""
Memeflix Backend — Favorites & History Services
================================================

What:  Per-user collections layered on top of the catalogue:
       - FavoriteService  an idempotent set of (user, meme) pairs
       - HistoryService   an append-only view log, read back collapsed to
                          one row per meme at its most recent view
Who:   Called by routes/favorites.py and routes/history.py.

Both rely on the foreign keys from activity rows to memes: writing a row
for a missing meme raises IntegrityError, reported as NotFoundError.
"""

import logging
from typing import List, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.exceptions import DatabaseError, NotFoundError
from memeflix.models import Favorite, Meme, ViewEvent
from memeflix.schemas.meme import HistoryMemeResponse, MemeResponse
from memeflix.services.query_builder import memes_with_tags

logger = logging.getLogger(__name__)


class FavoriteService:
    """
    Favorites are a set: adding twice is a no-op, removing something absent
    is a 404.
    """

    async def add_favorite(self, db: AsyncSession, user_id: int, meme_id: int) -> bool:
        """
        Returns:
            True when a row was inserted, False when it already existed
            (the route answers 201 vs 200 accordingly).

        Raises:
            NotFoundError: meme does not exist
        """
        try:
            existing = await db.get(Favorite, (user_id, meme_id))
            if existing is not None:
                return False
            db.add(Favorite(user_id=user_id, meme_id=meme_id))
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise NotFoundError(resource="meme", resource_id=meme_id)
        except SQLAlchemyError as e:
            logger.error("Database error adding favorite: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not add to favorites.")

        logger.info("Favorite added: user=%s meme=%s", user_id, meme_id)
        return True

    async def remove_favorite(self, db: AsyncSession, user_id: int, meme_id: int) -> None:
        try:
            result = await db.execute(
                delete(Favorite).where(Favorite.user_id == user_id, Favorite.meme_id == meme_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error removing favorite: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not remove from favorites.")

        if result.rowcount == 0:
            raise NotFoundError(resource="favorite", resource_id=meme_id)
        logger.info("Favorite removed: user=%s meme=%s", user_id, meme_id)

    async def list_favorites(self, db: AsyncSession, user_id: int) -> List[MemeResponse]:
        """Favorited memes with tags, most recently added first."""
        statement = (
            memes_with_tags()
            .join(Favorite, Favorite.meme_id == Meme.id)
            .where(Favorite.user_id == user_id)
            .group_by(Favorite.added_at)
            .order_by(Favorite.added_at.desc(), Meme.id.desc())
        )
        try:
            rows = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing favorites: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve favorites.")
        return [MemeResponse.from_row(meme, tags) for meme, tags in rows]

    async def favorite_ids(self, db: AsyncSession, user_id: int) -> List[int]:
        try:
            result = await db.execute(
                select(Favorite.meme_id)
                .where(Favorite.user_id == user_id)
                .order_by(Favorite.added_at.desc())
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing favorite ids: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve favorites.")
        return list(result.scalars().all())


class HistoryService:
    """
    View history.

    Writes append a ViewEvent every time; repeats are kept. Reads collapse
    the log per meme:

        SELECT meme_id, MAX(viewed_at) AS last_viewed_at
        FROM view_events WHERE user_id = :user GROUP BY meme_id

    joined back to memes and ordered by last_viewed_at DESC.
    """

    async def record_view(self, db: AsyncSession, user_id: int, meme_id: int) -> None:
        try:
            db.add(ViewEvent(user_id=user_id, meme_id=meme_id))
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise NotFoundError(resource="meme", resource_id=meme_id)
        except SQLAlchemyError as e:
            logger.error("Database error recording view: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not record view.")
        logger.debug("View recorded: user=%s meme=%s", user_id, meme_id)

    async def list_history(
        self, db: AsyncSession, user_id: int, limit: int
    ) -> List[HistoryMemeResponse]:
        last_viewed = (
            select(
                ViewEvent.meme_id.label("meme_id"),
                func.max(ViewEvent.viewed_at).label("last_viewed_at"),
            )
            .where(ViewEvent.user_id == user_id)
            .group_by(ViewEvent.meme_id)
            .subquery("last_viewed")
        )
        statement = (
            memes_with_tags()
            .add_columns(last_viewed.c.last_viewed_at)
            .join(last_viewed, last_viewed.c.meme_id == Meme.id)
            .group_by(last_viewed.c.last_viewed_at)
            .order_by(last_viewed.c.last_viewed_at.desc(), Meme.id.desc())
            .limit(limit)
        )
        try:
            rows: List[Tuple] = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing history: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve viewing history.")

        return [
            HistoryMemeResponse(
                **MemeResponse.from_row(meme, tags).model_dump(),
                last_viewed_at=viewed_at,
            )
            for meme, tags, viewed_at in rows
        ]

    async def viewed_ids(self, db: AsyncSession, user_id: int) -> List[int]:
        try:
            result = await db.execute(
                select(ViewEvent.meme_id)
                .where(ViewEvent.user_id == user_id)
                .distinct()
                .order_by(ViewEvent.meme_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing viewed ids: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve viewing history.")
        return list(result.scalars().all())


favorite_service = FavoriteService()
history_service = HistoryService()
