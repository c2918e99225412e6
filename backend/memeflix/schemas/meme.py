"""
Memeflix Backend — Meme, Tag & Activity Schemas
================================================

What:  Pydantic models defining the API contract for the catalogue, the
       vote ledger, favorites and history.
Why:   Schemas are separate from the ORM models because list endpoints
       return computed fields (score, joined tag names, media URL, last
       view time) that do not exist as columns.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from memeflix.models import Meme
from memeflix.schemas.common import MAX_ID


# ══════════════════════════════════════════════════════════════════════════
# Catalogue
# ══════════════════════════════════════════════════════════════════════════


class MemeResponse(BaseModel):
    """
    What:  Full representation of a meme as rendered by a card or the player.

    Why `tags` is a string:
        Listing queries aggregate tag names with GROUP_CONCAT over a LEFT
        JOIN; the frontend splits on commas. Untagged memes get "".
    """
    id: int
    title: str
    description: Optional[str] = None
    filename: str
    type: str = Field(description="image, gif or video")
    media_url: str = Field(description="Path under /media serving the raw bytes")
    upvotes: int
    downvotes: int
    score: int = Field(description="upvotes - downvotes")
    uploaded_at: datetime
    tags: str = Field(default="", description="Comma-joined tag names")

    @classmethod
    def from_row(cls, meme: Meme, tags: Optional[str]) -> "MemeResponse":
        return cls(
            id=meme.id,
            title=meme.title,
            description=meme.description,
            filename=meme.filename,
            type=meme.type,
            media_url=f"/media/{meme.filename}",
            upvotes=meme.upvotes,
            downvotes=meme.downvotes,
            score=meme.score,
            uploaded_at=meme.uploaded_at,
            tags=tags or "",
        )


class HistoryMemeResponse(MemeResponse):
    last_viewed_at: datetime = Field(description="Most recent view by the caller")


class PaginationMeta(BaseModel):
    """total_pages is ceil(total_memes / limit); 0 when nothing matches."""
    current_page: int
    total_pages: int
    total_memes: int
    limit: int


class MemeListResponse(BaseModel):
    """Paginated wrapper returned by GET /api/memes and GET /api/memes/search."""
    memes: List[MemeResponse]
    pagination: PaginationMeta


class MemeCollectionResponse(BaseModel):
    """Unpaginated wrapper (by-tag rows, favorites)."""
    memes: List[MemeResponse]


class HistoryResponse(BaseModel):
    memes: List[HistoryMemeResponse]


class TagCount(BaseModel):
    name: str
    meme_count: int


class PopularTagsResponse(BaseModel):
    tags: List[TagCount]


class TagNamesResponse(BaseModel):
    tags: List[str]


# ══════════════════════════════════════════════════════════════════════════
# Vote Ledger
# ══════════════════════════════════════════════════════════════════════════


VoteAction = Literal["recorded", "removed", "changed"]


class VoteResponse(BaseModel):
    """
    What:  Outcome of one vote transaction.

    action:
        recorded  no previous vote; a row was inserted          (HTTP 201)
        removed   same direction again; the row was deleted     (HTTP 200)
        changed   opposite direction; the row was flipped       (HTTP 200)
    user_vote is the caller's vote after the transaction (null once removed).
    """
    message: str
    action: VoteAction
    meme_id: int
    upvotes: int
    downvotes: int
    score: int
    user_vote: Optional[Literal["up", "down"]] = None


class UserVote(BaseModel):
    meme_id: int
    vote_type: Literal["up", "down"]

    model_config = {"from_attributes": True}


class UserVotesResponse(BaseModel):
    votes: List[UserVote]


# ══════════════════════════════════════════════════════════════════════════
# Favorites & History
# ══════════════════════════════════════════════════════════════════════════


class MemeReference(BaseModel):
    """
    Request body naming a meme. Accepts the frontend's `memeId` as well as
    `meme_id`.
    """
    meme_id: int = Field(alias="memeId", ge=1, le=MAX_ID)

    model_config = {"populate_by_name": True}


class MemeIdsResponse(BaseModel):
    meme_ids: List[int]
