"""
Memeflix Backend — Tag Route Handlers
======================================

What:  Tag vocabulary for the browse sidebar (popular) and the search
       form's tag picker (all).
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.config import settings
from memeflix.database import get_db_session
from memeflix.schemas.common import MAX_LIMIT
from memeflix.schemas.meme import PopularTagsResponse, TagNamesResponse
from memeflix.services.tag_service import tag_service

router = APIRouter(prefix="/api/tags", tags=["Tags"])


@router.get("/popular", response_model=PopularTagsResponse, summary="Most used tags")
async def popular_tags(
    limit: int | None = Query(default=None, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db_session),
) -> PopularTagsResponse:
    tags = await tag_service.popular_tags(db, limit or settings.default_popular_tags_limit)
    return PopularTagsResponse(tags=tags)


@router.get("/all", response_model=TagNamesResponse, summary="Every tag, alphabetical")
async def all_tags(db: AsyncSession = Depends(get_db_session)) -> TagNamesResponse:
    return TagNamesResponse(tags=await tag_service.all_tags(db))
