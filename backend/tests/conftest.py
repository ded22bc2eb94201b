"""
SnipShare Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before anything from `snipshare` is
       imported, so module-level settings (bcrypt cost, database URL) pick
       up the test values.

Fixture Hierarchy (all function-scoped):
    ├── test_settings:    Settings for an isolated in-memory SQLite app
    ├── database:         Database with the schema created
    ├── db_session:       AsyncSession on that database
    ├── mock_db_session:  AsyncMock session for store-failure paths
    ├── quote_transport:  httpx.MockTransport serving a fixed quote
    ├── app:              create_app(test_settings) with schema + mock quotes
    └── test_client:      httpx AsyncClient bound to `app` (keeps cookies)
"""

import os

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (must run before any snipshare import)
# ══════════════════════════════════════════════════════════════════════════

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum bcrypt cost keeps the suite fast
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DB_CREATE_SCHEMA"] = "false"

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from snipshare.config import Settings
from snipshare.database import Database
from snipshare.main import create_app
from snipshare.services.quote_service import QuoteService

SAMPLE_QUOTE = {
    "id": "5a6ce86f2af929789500e824",
    "author": "Alan Kay",
    "quote": "The best way to predict the future is to invent it.",
}


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        bcrypt_rounds=4,
        log_level="WARNING",
        db_create_schema=False,
        retry_max_attempts=2,
        retry_min_wait=0,
        retry_max_wait=0,
        cb_failure_threshold=3,
        cb_recovery_timeout=60,
        rate_limit_requests=10000,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    db = Database.from_settings(test_settings)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that stands in for AsyncSession.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
        with pytest.raises(StoreError):
            await SnippetService(mock_db_session).list_snippets()
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def quote_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=SAMPLE_QUOTE)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def app(test_settings, quote_transport):
    """
    A fresh application per test.

    ASGITransport does not run lifespan events, so the schema is created
    here and the quote client is swapped for one on a MockTransport.
    """
    application = create_app(test_settings)
    await application.state.database.create_schema()
    await application.state.quote_service.aclose()
    application.state.quote_service = QuoteService(test_settings, transport=quote_transport)
    yield application
    await application.state.quote_service.aclose()
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to `app` in-process.

    Cookies set by the app (the session cookie) are kept between requests,
    like a browser. Redirects are not followed, so tests can assert on 303s.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
