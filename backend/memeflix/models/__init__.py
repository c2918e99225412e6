"""
Memeflix Backend — ORM Models
==============================

Importing this package registers every table on Base.metadata, which
create_schema() and Alembic both rely on.
"""

from memeflix.models.meme import MEDIA_TYPES, Meme, Tag, meme_tags
from memeflix.models.user import User
from memeflix.models.activity import VOTE_TYPES, Favorite, ViewEvent, Vote

__all__ = [
    "MEDIA_TYPES",
    "VOTE_TYPES",
    "Meme",
    "Tag",
    "meme_tags",
    "User",
    "Vote",
    "Favorite",
    "ViewEvent",
]
