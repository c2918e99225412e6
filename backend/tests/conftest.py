"""
Memeflix Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any memeflix import, so the
       module-level settings and engine point at a throwaway SQLite file.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for failure-path unit tests
    ├── database:        fresh schema on the test database file
    │   ├── db_session:     a real AsyncSession
    │   ├── seeded_memes:   five memes, seven tags, known counters
    │   └── test_client:    HTTPX AsyncClient over the ASGI app
    │       ├── login_as:     register + log in a named user
    │       └── auth_headers: bearer header for "alice"
    └── media_dir:       the configured media root, populated with files

Connection discipline:
    The engine pools a single connection. Fixtures and tests that open a
    session of their own close it before calling the API, otherwise the
    request would wait for the connection.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any memeflix import)
# ══════════════════════════════════════════════════════════════════════════

_TEST_DIR = tempfile.mkdtemp(prefix="memeflix_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["MEDIA_ROOT"] = os.path.join(_TEST_DIR, "media")
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from memeflix.config import settings  # noqa: E402
from memeflix.database import Base, async_session_factory, engine  # noqa: E402
from memeflix.models import Meme, Tag, User, meme_tags  # noqa: E402

# title, description, filename, type, uploaded day, upvotes, downvotes, tags
SEED_MEMES = [
    ("Distracted Boyfriend", "Looking at someone else", "distracted.jpg", "image", 1, 3, 0,
     ["classic", "relationships"]),
    ("Dancing Cat", "Vibing to the beat", "dancing_cat.gif", "gif", 2, 1, 2,
     ["Cats", "funny"]),
    ("Surprised Pikachu", "Shocked face", "pikachu.png", "image", 3, 5, 1,
     ["classic", "anime", "funny"]),
    ("Keyboard Cat", "Play him off", "keyboard_cat.mp4", "video", 4, 0, 0,
     ["Cats", "music", "classic"]),
    ("This Is Fine", "A dog 100% calm in a burning room", "this_is_fine.jpg", "image", 5, 2, 2,
     ["fire", "classic"]),
]


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for exercising error paths without a database.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def database():
    """Drops and recreates every table, then releases pooled connections afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_memes(database):
    """
    Inserts SEED_MEMES (ids 1-5 in order) and returns {filename: id}.

    The counters are set directly and do not match the (empty) vote ledger;
    vote tests only look at relative changes.
    """
    ids = {}
    async with async_session_factory() as session:
        tags = {}
        for title, description, filename, media_type, day, up, down, tag_names in SEED_MEMES:
            meme = Meme(
                title=title,
                description=description,
                filename=filename,
                type=media_type,
                uploaded_at=datetime(2024, 1, day, 12, 0, tzinfo=timezone.utc),
                upvotes=up,
                downvotes=down,
            )
            session.add(meme)
            await session.flush()
            ids[filename] = meme.id
            for name in tag_names:
                if name not in tags:
                    tag = Tag(name=name)
                    session.add(tag)
                    await session.flush()
                    tags[name] = tag.id
                await session.execute(
                    meme_tags.insert().values(meme_id=meme.id, tag_id=tags[name])
                )
        await session.commit()
    return ids


@pytest_asyncio.fixture
async def test_user(database):
    async with async_session_factory() as session:
        user = User(username="tester", email="tester@example.com", password_hash="not-a-hash")
        session.add(user)
        await session.commit()
    return user


@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to the ASGI app directly (no server, no lifespan).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from memeflix.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register_and_login(client: AsyncClient, username: str = "alice", password: str = "secret1") -> dict:
    """Registers a user through the API and returns an Authorization header for them."""
    await client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    response = await client.post("/api/auth/login", json={"username": username, "password": password})
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login_as(test_client):
    """Registers and logs in another user: `headers = await login_as("bob")`."""

    async def _login(username: str = "alice", password: str = "secret1") -> dict:
        return await register_and_login(test_client, username, password)

    return _login


@pytest_asyncio.fixture
async def auth_headers(login_as):
    return await login_as()


@pytest.fixture
def media_dir():
    """The configured media root with two small files in it."""
    root = Path(settings.media_root)
    root.mkdir(parents=True, exist_ok=True)
    (root / "pikachu.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    (root / "keyboard_cat.mp4").write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 200_000)
    return root
