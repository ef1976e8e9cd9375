"""
WaifuPicks Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── database: In-memory SQLite ledger with the schema created
    ├── seed_items: Inserts rows directly, bypassing the ledger
    ├── fetch_items: Reads rows back as {id: Item}
    ├── mock_db_session: Mock session for storage-failure paths
    ├── test_client: HTTPX AsyncClient bound to an app owning `database`
    ├── token_secret: Turns on bearer-token checks for one test
    └── make_participant: Request-shaped participant dicts
"""

import os

# Must run before any waifupicks import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["TOKEN_SECRET"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from waifupicks.config import settings
from waifupicks.database import Database
from waifupicks.models.item import Item


@pytest_asyncio.fixture
async def database():
    """
    Provides a fresh in-memory ledger per test.

    StaticPool keeps one shared connection, so every session of the test
    (service calls, app requests, assertions) sees the same tables.
    """
    db = Database("sqlite+aiosqlite://")
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def seed_items(database):
    """Insert items directly, e.g. `await seed_items(("a", 3, 1), ("b", 0, 0))`."""

    async def _seed(*rows):
        async with database.session() as session:
            for item_id, wins, losses in rows:
                session.add(
                    Item(
                        id=item_id,
                        image_url=f"https://img.example/{item_id}.png",
                        source="seed",
                        wins=wins,
                        losses=losses,
                    )
                )

    return _seed


@pytest.fixture
def fetch_items(database):
    """Read every row back, keyed by id."""

    async def _fetch() -> Dict[str, Item]:
        async with database.session() as session:
            result = await session.execute(select(Item))
            return {item.id: item for item in result.scalars().all()}

    return _fetch


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    `bind.dialect.name` is set so the ledger picks the SQLite upsert;
    tests set `execute.side_effect` to simulate driver failures.
    """
    session = MagicMock()
    session.bind.dialect.name = "sqlite"
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to an app that owns the test database.

    ASGITransport does not run the lifespan, so no startup ping happens.
    """
    from waifupicks.main import create_app

    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        client.app = app
        yield client


@pytest.fixture
def token_secret(monkeypatch):
    """Enable bearer-token checks for the duration of one test."""
    secret = "test-secret-with-enough-entropy-0123456789"
    monkeypatch.setattr(settings, "token_secret", secret)
    return secret


@pytest.fixture
def make_participant():
    """Build request-shaped participant dicts (camelCase keys, as the frontend sends)."""

    def _make(item_id, field="wins", operation="increment", source="anilist", image_url=None):
        return {
            "id": item_id,
            "imageUrl": image_url or f"https://img.example/{item_id}.png",
            "source": source,
            "field": field,
            "operation": operation,
        }

    return _make
