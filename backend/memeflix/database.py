"""
Memeflix Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine over SQLite (aiosqlite driver), provides a
       session dependency that auto-commits on success and auto-rolls-back
       on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

SQLite Connection Strategy:
    The catalogue lives in a single embedded database file. Every new
    DBAPI connection gets two adjustments:

    1. PRAGMA foreign_keys=ON: SQLite ships with referential integrity
       disabled. Cascading deletes and the "vote on a missing meme" 404
       both depend on it.
    2. Driver-level autocommit + an explicit BEGIN on transaction start.
       pysqlite/aiosqlite otherwise defer BEGIN until the first write, so
       a read-then-write sequence (the vote ledger) would run its read
       outside the transaction.

    The pool holds one connection by default (see Settings.db_pool_size),
    so concurrent requests queue for it and writes are serialized.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from memeflix.config import settings

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def _engine_options(database_url: str) -> dict:
    """Pool arguments for the given URL (in-memory SQLite needs StaticPool)."""
    options = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


def install_sqlite_pragmas(async_engine: AsyncEngine) -> None:
    """
    Registers the connect/begin listeners described in the module docstring.

    Exposed separately so alembic's env and the seed CLI can apply the same
    behavior to engines they build themselves.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable the driver's implicit BEGIN; we emit our own below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str) -> AsyncEngine:
    """Creates an async engine and applies SQLite connection setup when relevant."""
    async_engine = create_async_engine(database_url, **_engine_options(database_url))
    if database_url.startswith("sqlite"):
        install_sqlite_pragmas(async_engine)
    return async_engine


engine = build_engine(settings.database_url)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after the vote ledger
# commits inside the service layer.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, used both by create_all at startup
    and by Alembic's autogenerate.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns the connection to the pool)

    Services that need an explicit transaction boundary (the vote ledger)
    commit or roll back themselves; the commit here is then a no-op.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_schema() -> None:
    """
    What:  Creates every table that does not exist yet.
    When:  Application startup and `memeflix-seed --create-schema`.
    Why:   A fresh checkout boots without running Alembic first. Existing
           tables are left untouched, so this is safe alongside migrations.
    """
    # Import registers every model on Base.metadata
    import memeflix.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
