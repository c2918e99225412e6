"""
Memeflix Backend — Meme Query Builder
======================================

What:  Turns listing/search parameters into SQLAlchemy statements.
Why:   Search combines up to three optional filters with a sort key and
       pagination, and the page query and the count query must agree on
       exactly the same filters. Building both from one list of typed
       predicates makes that agreement structural instead of a matter of
       keeping two string-concatenated WHERE clauses in sync.
How:   Each predicate object yields one boolean clause; MemeQuery ANDs
       them together and applies them to either statement.

    Predicate       Clause
    ─────────────   ──────────────────────────────────────────────────────
    TextSearch      lower(title|description|filename) LIKE %term%  (OR'd)
    MediaTypeIs     memes.type = :type
    TaggedWith      EXISTS (meme_tags ⋈ tags WHERE lower(name) = :tag)

Tag filtering is an EXISTS rather than an inner join so the LEFT JOIN that
feeds GROUP_CONCAT still sees every tag of a matching meme; a tag-filtered
card shows all of its tags, not only the one searched for.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import ColumnElement, Select, String, exists, func, or_, select
from sqlalchemy.orm import aliased

from memeflix.models import MEDIA_TYPES, Meme, Tag, meme_tags

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_SCORE = "score"
SORT_KEYS = (SORT_NEWEST, SORT_OLDEST, SORT_SCORE)

# Columns scanned by free-text search
SEARCHABLE_COLUMNS = (Meme.title, Meme.description, Meme.filename)


class Predicate(Protocol):
    def clause(self) -> ColumnElement[bool]:
        ...


@dataclass(frozen=True)
class TextSearch:
    """Case-insensitive substring match; LIKE wildcards in the term are escaped."""

    term: str

    def clause(self) -> ColumnElement[bool]:
        needle = self.term.lower()
        return or_(
            *(
                func.lower(column, type_=String).contains(needle, autoescape=True)
                for column in SEARCHABLE_COLUMNS
            )
        )


@dataclass(frozen=True)
class MediaTypeIs:
    media_type: str

    def clause(self) -> ColumnElement[bool]:
        return Meme.type == self.media_type


@dataclass(frozen=True)
class TaggedWith:
    """Meme carries a tag whose name equals `name`, ignoring case."""

    name: str

    def clause(self) -> ColumnElement[bool]:
        tag = aliased(Tag, name="filter_tag")
        link = meme_tags.alias("filter_link")
        return exists().where(
            link.c.meme_id == Meme.id,
            link.c.tag_id == tag.id,
            func.lower(tag.name) == self.name.lower(),
        )


def tag_names_column():
    """Comma-joined tag names of the meme in the current group ("" when untagged)."""
    return func.coalesce(func.group_concat(Tag.name, ","), "").label("tags")


def memes_with_tags() -> Select:
    """
    SELECT memes.*, group_concat(tags.name) ... LEFT JOIN tags ... GROUP BY memes.id

    Rows come back as (Meme, tags). Callers add WHERE/ORDER/LIMIT.
    """
    return (
        select(Meme, tag_names_column())
        .outerjoin(meme_tags, meme_tags.c.meme_id == Meme.id)
        .outerjoin(Tag, Tag.id == meme_tags.c.tag_id)
        .group_by(Meme.id)
    )


def order_for(sort: str) -> Tuple[ColumnElement, ...]:
    """ORDER BY terms for a sort key; id is the final tie-break so pages are stable."""
    if sort == SORT_OLDEST:
        return (Meme.uploaded_at.asc(), Meme.id.asc())
    if sort == SORT_SCORE:
        return (
            (Meme.upvotes - Meme.downvotes).desc(),
            Meme.uploaded_at.desc(),
            Meme.id.desc(),
        )
    return (Meme.uploaded_at.desc(), Meme.id.desc())


@dataclass
class MemeQuery:
    """
    A validated search: the AND-ed predicates plus a sort key.

    An empty MemeQuery is the general listing (all memes, newest first).
    """

    predicates: List[Predicate] = field(default_factory=list)
    sort: str = SORT_NEWEST

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        media_type: Optional[str] = None,
        tag: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> "MemeQuery":
        """
        Builds a query from raw request parameters.

        Lenient by contract: a blank q or tag adds no predicate, an unknown
        media type is ignored, an unknown sort falls back to newest.
        """
        predicates: List[Predicate] = []
        if q and q.strip():
            predicates.append(TextSearch(q))
        if media_type in MEDIA_TYPES:
            predicates.append(MediaTypeIs(media_type))
        if tag and tag.strip():
            predicates.append(TaggedWith(tag.strip()))
        return cls(predicates=predicates, sort=sort if sort in SORT_KEYS else SORT_NEWEST)

    def clauses(self) -> List[ColumnElement[bool]]:
        return [predicate.clause() for predicate in self.predicates]

    def count_statement(self) -> Select:
        return select(func.count(Meme.id)).where(*self.clauses())

    def page_statement(self, page: int, limit: int) -> Select:
        return (
            memes_with_tags()
            .where(*self.clauses())
            .order_by(*order_for(self.sort))
            .limit(limit)
            .offset((page - 1) * limit)
        )
