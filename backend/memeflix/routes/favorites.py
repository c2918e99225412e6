"""
Memeflix Backend — Favorites Route Handlers
============================================

What:  The caller's "My List". Every endpoint requires a bearer token.

Status codes on POST:
    201  newly added
    200  already a favorite (no-op, nothing written)
"""

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.database import get_db_session
from memeflix.models import User
from memeflix.schemas.common import MAX_ID, ErrorResponse, MessageResponse
from memeflix.schemas.meme import MemeCollectionResponse, MemeIdsResponse, MemeReference
from memeflix.security import get_current_user
from memeflix.services.activity_service import favorite_service

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


@router.get("", response_model=MemeCollectionResponse, summary="List favorite memes")
async def list_favorites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemeCollectionResponse:
    return MemeCollectionResponse(memes=await favorite_service.list_favorites(db, user.id))


@router.get("/ids", response_model=MemeIdsResponse, summary="Ids of favorite memes")
async def favorite_ids(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemeIdsResponse:
    return MemeIdsResponse(meme_ids=await favorite_service.favorite_ids(db, user.id))


@router.post(
    "",
    response_model=MessageResponse,
    status_code=201,
    responses={
        200: {"description": "Already a favorite", "model": MessageResponse},
        404: {"description": "Meme not found", "model": ErrorResponse},
    },
    summary="Add a meme to favorites",
)
async def add_favorite(
    body: MemeReference,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    created = await favorite_service.add_favorite(db, user.id, body.meme_id)
    if not created:
        response.status_code = 200
        return MessageResponse(message="Already in favorites")
    return MessageResponse(message="Added to favorites")


@router.delete(
    "/{meme_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not a favorite", "model": ErrorResponse}},
    summary="Remove a meme from favorites",
)
async def remove_favorite(
    meme_id: int = Path(ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await favorite_service.remove_favorite(db, user.id, meme_id)
    return MessageResponse(message="Removed from favorites")
