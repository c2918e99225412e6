"""
Memeflix Backend — Catalogue Seed Loader
=========================================

What:  Loads memes and their tags from a CSV file into the database.
Why:   Memes are never uploaded through the API; the catalogue is curated
       offline and loaded with this command.
How:   One transaction for the whole file. Safe to re-run:
       - a row whose filename already exists is not inserted again, but its
         tags are still linked (so adding tags to the CSV and re-running
         works)
       - tags are matched case-insensitively and created once
       - tag links use INSERT ... ON CONFLICT DO NOTHING

CSV format (header row required):
    title,description,filename,type,tags
    "Distracted Boyfriend","Classic",distracted.jpg,image,"relationships, classic"

Usage:
    memeflix-seed memes.csv --create-schema
    memeflix-seed --reconcile-votes
"""

import argparse
import asyncio
import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import aiofiles
from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.database import async_session_factory, create_schema, dispose_engine
from memeflix.exceptions import DatabaseError
from memeflix.models import MEDIA_TYPES, Meme, Tag, meme_tags
from memeflix.services.vote_service import vote_service

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("title", "filename", "type")


@dataclass
class SeedSummary:
    rows: int = 0
    memes_inserted: int = 0
    memes_existing: int = 0
    rows_skipped: int = 0
    tags_created: int = 0
    links_created: int = 0


def split_tags(raw: Optional[str]) -> List[str]:
    """'Cats, funny,,cats ' → ['Cats', 'funny'] (trimmed, de-duplicated ignoring case)."""
    seen = set()
    names = []
    for part in (raw or "").split(","):
        name = part.strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            names.append(name)
    return names


async def read_rows(path: str) -> List[Dict[str, str]]:
    async with aiofiles.open(path, "r", encoding="utf-8-sig", newline="") as handle:
        content = await handle.read()
    return list(csv.DictReader(io.StringIO(content)))


class CatalogueLoader:
    """Per-run state: the tag cache avoids one SELECT per tag occurrence."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.summary = SeedSummary()
        self._tag_ids: Dict[str, int] = {}

    async def _tag_id(self, name: str) -> int:
        key = name.lower()
        if key in self._tag_ids:
            return self._tag_ids[key]

        tag_id = (
            await self.db.execute(select(Tag.id).where(func.lower(Tag.name) == key))
        ).scalar_one_or_none()
        if tag_id is None:
            tag = Tag(name=name)
            self.db.add(tag)
            await self.db.flush()
            tag_id = tag.id
            self.summary.tags_created += 1
        self._tag_ids[key] = tag_id
        return tag_id

    async def _meme_id(self, row: Mapping[str, str]) -> int:
        filename = row["filename"].strip()
        meme_id = (
            await self.db.execute(select(Meme.id).where(Meme.filename == filename))
        ).scalar_one_or_none()
        if meme_id is not None:
            self.summary.memes_existing += 1
            return meme_id

        meme = Meme(
            title=row["title"].strip(),
            description=(row.get("description") or "").strip() or None,
            filename=filename,
            type=row["type"].strip().lower(),
        )
        self.db.add(meme)
        await self.db.flush()
        self.summary.memes_inserted += 1
        return meme.id

    def _is_valid(self, line: int, row: Mapping[str, str]) -> bool:
        missing = [column for column in REQUIRED_COLUMNS if not (row.get(column) or "").strip()]
        if missing:
            logger.warning("Row %d skipped: missing %s", line, ", ".join(missing))
            return False
        if row["type"].strip().lower() not in MEDIA_TYPES:
            logger.warning("Row %d skipped: invalid type %r", line, row["type"])
            return False
        return True

    async def load(self, rows: Iterable[Mapping[str, str]]) -> SeedSummary:
        # Line 1 is the header
        for line, row in enumerate(rows, start=2):
            self.summary.rows += 1
            if not self._is_valid(line, row):
                self.summary.rows_skipped += 1
                continue

            meme_id = await self._meme_id(row)
            for name in split_tags(row.get("tags")):
                tag_id = await self._tag_id(name)
                result = await self.db.execute(
                    sqlite_insert(meme_tags)
                    .values(meme_id=meme_id, tag_id=tag_id)
                    .on_conflict_do_nothing()
                )
                self.summary.links_created += result.rowcount or 0
        return self.summary


async def seed_catalogue(rows: Iterable[Mapping[str, str]]) -> SeedSummary:
    """Loads rows in a single transaction; nothing is written if any row fails."""
    async with async_session_factory() as db:
        try:
            summary = await CatalogueLoader(db).load(rows)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Seeding failed, transaction rolled back: %s", str(e), exc_info=True)
            raise DatabaseError(message="Seeding failed", context={"error_type": type(e).__name__})
    logger.info(
        "Seed complete: %d rows, %d memes inserted, %d already present, %d skipped, "
        "%d tags created, %d tag links created",
        summary.rows, summary.memes_inserted, summary.memes_existing,
        summary.rows_skipped, summary.tags_created, summary.links_created,
    )
    return summary


async def reconcile_votes() -> int:
    async with async_session_factory() as db:
        return await vote_service.reconcile_counters(db)


async def run(args: argparse.Namespace) -> None:
    try:
        if args.create_schema:
            await create_schema()
        if args.csv_path:
            await seed_catalogue(await read_rows(args.csv_path))
        if args.reconcile_votes:
            await reconcile_votes()
    finally:
        await dispose_engine()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memeflix-seed",
        description="Load the meme catalogue from CSV and maintain vote counters.",
    )
    parser.add_argument("csv_path", nargs="?", help="CSV file with title,description,filename,type,tags")
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables first")
    parser.add_argument(
        "--reconcile-votes",
        action="store_true",
        help="Recompute upvote/downvote counters from the vote ledger",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    from memeflix.main import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.csv_path or args.create_schema or args.reconcile_votes):
        parser.error("nothing to do: give a CSV path, --create-schema or --reconcile-votes")

    setup_logging()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
