"""
Memeflix Backend — Viewing History Route Handlers
==================================================

What:  Records meme opens and returns the caller's "Continue Watching" row.
       Every endpoint requires a bearer token.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.config import settings
from memeflix.database import get_db_session
from memeflix.models import User
from memeflix.schemas.common import MAX_LIMIT, ErrorResponse, MessageResponse
from memeflix.schemas.meme import HistoryResponse, MemeIdsResponse, MemeReference
from memeflix.security import get_current_user
from memeflix.services.activity_service import history_service

router = APIRouter(prefix="/api/history", tags=["History"])


@router.get(
    "",
    response_model=HistoryResponse,
    summary="Recently viewed memes, one entry per meme",
)
async def list_history(
    limit: int | None = Query(default=None, ge=1, le=MAX_LIMIT),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HistoryResponse:
    memes = await history_service.list_history(
        db, user.id, limit or settings.default_history_limit
    )
    return HistoryResponse(memes=memes)


@router.get("/ids", response_model=MemeIdsResponse, summary="Ids of every viewed meme")
async def viewed_ids(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemeIdsResponse:
    return MemeIdsResponse(meme_ids=await history_service.viewed_ids(db, user.id))


@router.post(
    "",
    response_model=MessageResponse,
    status_code=201,
    responses={404: {"description": "Meme not found", "model": ErrorResponse}},
    summary="Record that the caller opened a meme",
)
async def record_view(
    body: MemeReference,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await history_service.record_view(db, user.id, body.meme_id)
    return MessageResponse(message="View recorded")
