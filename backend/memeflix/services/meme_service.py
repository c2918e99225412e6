"""
Memeflix Backend — Meme Service (Query Layer)
==============================================

What:  Read-only catalogue queries: paginated listing, faceted search,
       tag-scoped rows, random pick, single meme and related tags.
Why:   Keeps SQL and pagination arithmetic out of the route handlers.
How:   Statements come from services.query_builder; this module executes
       them and shapes rows into response schemas.
Who:   Called by routes/memes.py.

Error Handling Strategy:
    SQLAlchemy failures are logged with the traceback and re-raised as
    DatabaseError, so the client sees a generic 500 and never a partial
    page. Our own exceptions (NotFoundError, ValidationError) propagate
    untouched.
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.exceptions import DatabaseError, NotFoundError, ValidationError
from memeflix.models import Meme, Tag, meme_tags
from memeflix.schemas.meme import (
    MemeCollectionResponse,
    MemeListResponse,
    MemeResponse,
    PaginationMeta,
)
from memeflix.services.query_builder import MemeQuery, TaggedWith, memes_with_tags

logger = logging.getLogger(__name__)


def total_pages_for(total: int, limit: int) -> int:
    """ceil(total / limit) without floats."""
    return -(-total // limit)


class MemeService:
    """
    Business logic layer for catalogue reads.

    Responsibilities:
        - list_memes() / search_memes(): paginated, faceted listing
        - memes_by_tag(): homepage carousel rows
        - random_meme(), get_meme(): single-meme lookups
        - related_tags(): "more like this" suggestions
    """

    async def list_memes(self, db: AsyncSession, page: int, limit: int) -> MemeListResponse:
        """All memes, newest first. Equivalent to a search with no filters."""
        return await self.search_memes(db, MemeQuery(), page, limit)

    async def search_memes(
        self,
        db: AsyncSession,
        query: MemeQuery,
        page: int,
        limit: int,
    ) -> MemeListResponse:
        """
        Executes a MemeQuery for one page.

        Pagination math:
            OFFSET = (page - 1) * limit
            total_pages = ceil(filtered_total / limit)
        A page beyond the last one returns an empty list with the real totals.

        Raises:
            ValidationError: page or limit below 1 (→ 400)
            DatabaseError: either statement failed (→ 500)
        """
        if page < 1 or limit < 1:
            raise ValidationError(
                message="Invalid page or limit parameter.",
                context={"page": page, "limit": limit},
            )

        try:
            total = (await db.execute(query.count_statement())).scalar() or 0
            rows = (await db.execute(query.page_statement(page, limit))).all()
        except SQLAlchemyError as e:
            logger.error("Database error searching memes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve memes. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.debug(
            "Meme query: %d predicate(s), sort=%s, page=%d, limit=%d → %d/%d",
            len(query.predicates), query.sort, page, limit, len(rows), total,
        )
        return MemeListResponse(
            memes=[MemeResponse.from_row(meme, tags) for meme, tags in rows],
            pagination=PaginationMeta(
                current_page=page,
                total_pages=total_pages_for(total, limit),
                total_memes=total,
                limit=limit,
            ),
        )

    async def memes_by_tag(self, db: AsyncSession, tag: str, limit: int) -> MemeCollectionResponse:
        """Up to `limit` random memes carrying `tag`. Unknown tag → empty list."""
        if limit < 1:
            raise ValidationError(message="Invalid limit parameter.", field="limit")

        statement = (
            memes_with_tags()
            .where(TaggedWith(tag).clause())
            .order_by(func.random())
            .limit(limit)
        )
        try:
            rows = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching memes for tag %r: %s", tag, str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve memes for this tag.")

        return MemeCollectionResponse(memes=[MemeResponse.from_row(m, t) for m, t in rows])

    async def random_meme(self, db: AsyncSession) -> MemeResponse:
        try:
            row = (
                await db.execute(memes_with_tags().order_by(func.random()).limit(1))
            ).first()
        except SQLAlchemyError as e:
            logger.error("Database error picking random meme: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve a random meme.")

        if row is None:
            raise NotFoundError(resource="meme")
        return MemeResponse.from_row(*row)

    async def get_meme(self, db: AsyncSession, meme_id: int) -> MemeResponse:
        """
        Raises:
            NotFoundError: no meme with this id (→ 404)
        """
        try:
            row = (await db.execute(memes_with_tags().where(Meme.id == meme_id))).first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching meme %s: %s", meme_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve the meme. Please try again.")

        if row is None:
            raise NotFoundError(resource="meme", resource_id=meme_id)
        return MemeResponse.from_row(*row)

    async def related_tags(self, db: AsyncSession, meme_id: int, limit: int) -> List[str]:
        """
        Tags that co-occur with this meme's tags on other memes.

        Query plan:
            own    = tag ids on :meme
            peers  = other memes sharing at least one tag in own
            result = tags on peers, excluding own, counted per peer link,
                     ORDER BY count DESC, name ASC LIMIT :limit

        Raises:
            NotFoundError: unknown meme (→ 404)
        """
        own_tags = select(meme_tags.c.tag_id).where(meme_tags.c.meme_id == meme_id)
        peer_link = meme_tags.alias("peer_link")
        peers = (
            select(peer_link.c.meme_id)
            .where(peer_link.c.tag_id.in_(own_tags), peer_link.c.meme_id != meme_id)
            .distinct()
        )
        co_link = meme_tags.alias("co_link")
        frequency = func.count().label("frequency")
        statement = (
            select(Tag.name, frequency)
            .join(co_link, co_link.c.tag_id == Tag.id)
            .where(co_link.c.meme_id.in_(peers), Tag.id.not_in(own_tags))
            .group_by(Tag.id, Tag.name)
            .order_by(frequency.desc(), Tag.name.asc())
            .limit(limit)
        )

        try:
            exists_row = (await db.execute(select(Meme.id).where(Meme.id == meme_id))).first()
            if exists_row is None:
                raise NotFoundError(resource="meme", resource_id=meme_id)
            rows = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error computing related tags for %s: %s", meme_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve related tags.")

        return [name for name, _ in rows]


# ── Singleton Instance ────────────────────────────────────────────────────
meme_service = MemeService()
