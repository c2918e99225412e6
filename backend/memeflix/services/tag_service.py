"""
Memeflix Backend — Tag Service
===============================

What:  Tag vocabulary queries for the browse sidebar and the search form.
Who:   Called by routes/tags.py.
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.exceptions import DatabaseError
from memeflix.models import Tag, meme_tags
from memeflix.schemas.meme import TagCount

logger = logging.getLogger(__name__)


class TagService:

    async def popular_tags(self, db: AsyncSession, limit: int) -> List[TagCount]:
        """Tags ranked by how many memes carry them; ties broken by name."""
        meme_count = func.count(meme_tags.c.meme_id).label("meme_count")
        statement = (
            select(Tag.name, meme_count)
            .join(meme_tags, meme_tags.c.tag_id == Tag.id)
            .group_by(Tag.id, Tag.name)
            .order_by(meme_count.desc(), Tag.name.asc())
            .limit(limit)
        )
        try:
            rows = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching popular tags: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve popular tags.")
        return [TagCount(name=name, meme_count=count) for name, count in rows]

    async def all_tags(self, db: AsyncSession) -> List[str]:
        """Every tag name, alphabetical ignoring case (the column collates NOCASE)."""
        try:
            result = await db.execute(select(Tag.name).order_by(Tag.name.asc()))
        except SQLAlchemyError as e:
            logger.error("Database error fetching tags: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve tags.")
        return list(result.scalars().all())


tag_service = TagService()
