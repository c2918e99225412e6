"""
Memeflix Backend — Media Route Handler
=======================================

What:  GET /media/{filename} streams a meme's raw bytes.
Why:   The frontend points <img>/<video> tags straight at media_url.

The `:path` converter lets names with encoded slashes or dot segments reach
MediaService, which rejects them with 400 instead of the router silently
answering 404.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from memeflix.schemas.common import ErrorResponse
from memeflix.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Media"])


@router.get(
    "/media/{filename:path}",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Raw media bytes"},
        400: {"description": "Unsafe filename", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
        500: {"description": "File could not be read", "model": ErrorResponse},
    },
    summary="Serve a media file",
)
async def serve_media(filename: str) -> StreamingResponse:
    media = await media_service.open_media(filename)
    return StreamingResponse(
        media_service.iter_chunks(media),
        media_type=media.media_type,
        headers={
            "Content-Length": str(media.size),
            # Filenames are unique and files are never rewritten in place
            "Cache-Control": "public, max-age=86400",
        },
    )
