"""
Memeflix Backend — Meme Route Handlers
=======================================

What:  Catalogue browsing (listing, search, rows, random, detail, related
       tags) and the two vote endpoints.
How:   Query parameters are declared with bounds; a non-numeric or
       out-of-range page/limit (below 1, or above MAX_ID / MAX_LIMIT) fails
       FastAPI validation and is answered with 400 by the
       RequestValidationError handler in main.py.

Route order matters: the literal paths (/search, /random, /by-tag) are
registered before /memes/{meme_id} so they are never parsed as an id.
"""

import logging

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.config import settings
from memeflix.database import get_db_session
from memeflix.models import User
from memeflix.schemas.common import MAX_ID, MAX_LIMIT, ErrorResponse
from memeflix.schemas.meme import (
    MemeCollectionResponse,
    MemeListResponse,
    MemeResponse,
    TagNamesResponse,
    UserVotesResponse,
    VoteResponse,
)
from memeflix.security import get_current_user
from memeflix.services.meme_service import meme_service
from memeflix.services.query_builder import MemeQuery
from memeflix.services.vote_service import vote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Memes"])

PAGE_RESPONSES = {
    400: {"description": "Invalid page or limit", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


def _page(
    page: int = Query(default=1, ge=1, le=MAX_ID, description="1-based page number"),
) -> int:
    return page


def _page_limit(
    limit: int | None = Query(default=None, ge=1, le=MAX_LIMIT, description="Items per page"),
) -> int:
    return limit or settings.default_page_limit


@router.get(
    "/memes",
    response_model=MemeListResponse,
    responses=PAGE_RESPONSES,
    summary="List memes, newest first",
)
async def list_memes(
    response: Response,
    page: int = Depends(_page),
    limit: int = Depends(_page_limit),
    db: AsyncSession = Depends(get_db_session),
) -> MemeListResponse:
    result = await meme_service.list_memes(db, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.pagination.total_memes)
    return result


@router.get(
    "/memes/search",
    response_model=MemeListResponse,
    responses=PAGE_RESPONSES,
    summary="Faceted meme search",
    description=(
        "All filters are optional and combined with AND. `q` matches title, "
        "description or filename case-insensitively; `type` outside "
        "image/gif/video and unknown `sort` values are ignored."
    ),
)
async def search_memes(
    response: Response,
    q: str | None = Query(default=None, max_length=200, description="Free-text term"),
    type: str | None = Query(default=None, description="image, gif or video"),
    sort: str | None = Query(default=None, description="newest (default), oldest or score"),
    tag: str | None = Query(default=None, max_length=100, description="Exact tag, any case"),
    page: int = Depends(_page),
    limit: int = Depends(_page_limit),
    db: AsyncSession = Depends(get_db_session),
) -> MemeListResponse:
    query = MemeQuery.from_params(q=q, media_type=type, tag=tag, sort=sort)
    result = await meme_service.search_memes(db, query, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.pagination.total_memes)
    return result


@router.get(
    "/memes/random",
    response_model=MemeResponse,
    responses={404: {"description": "Catalogue is empty", "model": ErrorResponse}},
    summary="One meme chosen uniformly at random",
)
async def random_meme(db: AsyncSession = Depends(get_db_session)) -> MemeResponse:
    return await meme_service.random_meme(db)


@router.get(
    "/memes/by-tag/{tag}",
    response_model=MemeCollectionResponse,
    summary="Random sample of memes carrying a tag",
)
async def memes_by_tag(
    tag: str = Path(min_length=1, max_length=100),
    limit: int | None = Query(default=None, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db_session),
) -> MemeCollectionResponse:
    return await meme_service.memes_by_tag(db, tag, limit or settings.default_row_limit)


@router.get(
    "/memes/{meme_id}",
    response_model=MemeResponse,
    responses={404: {"description": "Meme not found", "model": ErrorResponse}},
    summary="Get a single meme",
)
async def get_meme(
    meme_id: int = Path(ge=1, le=MAX_ID),
    db: AsyncSession = Depends(get_db_session),
) -> MemeResponse:
    return await meme_service.get_meme(db, meme_id)


@router.get(
    "/memes/{meme_id}/related-tags",
    response_model=TagNamesResponse,
    responses={404: {"description": "Meme not found", "model": ErrorResponse}},
    summary="Tags that co-occur with this meme's tags",
)
async def related_tags(
    meme_id: int = Path(ge=1, le=MAX_ID),
    limit: int | None = Query(default=None, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db_session),
) -> TagNamesResponse:
    tags = await meme_service.related_tags(
        db, meme_id, limit or settings.default_related_tags_limit
    )
    return TagNamesResponse(tags=tags)


# ── Vote Ledger ───────────────────────────────────────────────────────────

VOTE_RESPONSES = {
    200: {"description": "Vote removed or changed", "model": VoteResponse},
    201: {"description": "Vote recorded", "model": VoteResponse},
    401: {"description": "Missing token", "model": ErrorResponse},
    403: {"description": "Invalid token", "model": ErrorResponse},
    404: {"description": "Meme not found", "model": ErrorResponse},
}


async def _vote(
    direction: str, meme_id: int, response: Response, user: User, db: AsyncSession
) -> VoteResponse:
    result = await vote_service.cast_vote(db, user_id=user.id, meme_id=meme_id, direction=direction)
    response.status_code = 201 if result.action == "recorded" else 200
    return result


@router.post(
    "/memes/{meme_id}/upvote",
    response_model=VoteResponse,
    responses=VOTE_RESPONSES,
    summary="Upvote, or remove an existing upvote",
)
async def upvote(
    response: Response,
    meme_id: int = Path(ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResponse:
    return await _vote("up", meme_id, response, user, db)


@router.post(
    "/memes/{meme_id}/downvote",
    response_model=VoteResponse,
    responses=VOTE_RESPONSES,
    summary="Downvote, or remove an existing downvote",
)
async def downvote(
    response: Response,
    meme_id: int = Path(ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResponse:
    return await _vote("down", meme_id, response, user, db)


@router.get(
    "/votes",
    response_model=UserVotesResponse,
    summary="The caller's current votes",
)
async def my_votes(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserVotesResponse:
    return UserVotesResponse(votes=await vote_service.list_user_votes(db, user.id))
