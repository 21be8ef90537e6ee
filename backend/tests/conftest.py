"""
SpotMap Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before anything from `spotmap` is
       imported, so the settings singleton and the engine point at a
       throwaway SQLite file.

Fixtures:
    mock_db_session: AsyncMock standing in for AsyncSession (unit tests)
    db_engine:       fresh schema on the test SQLite database
    db_session:      real AsyncSession on that database
    make_draft:      builds SpotDraft objects with sensible defaults
    identity:        a signed-in Identity
    sample_image_bytes: smallest JPEG that passes header sniffing
    test_client:     httpx AsyncClient talking to the app over ASGI
"""

import os
import tempfile

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any spotmap import)
# ══════════════════════════════════════════════════════════════════════════

_TEST_DIR = tempfile.mkdtemp(prefix="spotmap_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOCATION_LOOKUP_URL"] = "http://geo.test/json/{client}"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from spotmap import database  # noqa: E402
from spotmap.models.spot import Spot  # noqa: E402,F401
from spotmap.models.user import User  # noqa: E402,F401
from spotmap.schemas.auth import Identity  # noqa: E402
from spotmap.schemas.spot import Category, Location, SpotDraft  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Unit-Test Doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """A MagicMock that simulates the AsyncSession surface the services use."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def identity():
    return Identity(uid="user-1", email="ada@example.com", display_name="Ada")


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI + JFIF APP0 header + EOI. Not a real picture."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def make_draft():
    def _make(**overrides):
        fields = {
            "description": "Best tacos in the Mission",
            "category": Category.FOOD,
            "location": Location(lat=37.7599, lng=-122.4148),
            "media": ["data:image/jpeg;base64,AAAA"],
        }
        fields.update(overrides)
        return SpotDraft(**fields)

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    Recreates every table on the test database.

    The engine is disposed afterwards so pooled aiosqlite connections never
    outlive the event loop of the test that opened them.
    """
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.drop_all)
        await conn.run_sync(database.Base.metadata.create_all)
    yield database.engine
    await database.engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with database.async_session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from spotmap.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
