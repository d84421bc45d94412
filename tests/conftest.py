"""
Test fixtures for the Invoice API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - repo: SqlAlchemyUserRepository bound to db_session (service-level tests)
  - client: Async HTTP test client wired to the test database
  - register: Factory that registers a user over HTTP and returns (headers, user)
  - viewer_headers / accountant_headers / admin_headers: ready-made callers

Key design decisions:
  - SECRET_KEY and friends are set in the environment before anything from
    invoice_api is imported, because Settings() is built at import time.
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test sessions,
    so the application code works exactly as it does in production.
  - Callers are identified by explicit Authorization headers per request,
    so one client can act as several users within a test.
  - Rate limit counters are reset before every test.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ARGON2_TIME_COST", "1")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from invoice_api.database import Base, get_db
from invoice_api.limiter import limiter
from invoice_api.main import app
from invoice_api.repositories.user_repository import SqlAlchemyUserRepository


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def repo(db_session):
    return SqlAlchemyUserRepository(db_session)


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """
    Factory fixture: register a user through the real endpoint.

    Returns (headers, user_json) where headers carries the bearer token.
    """

    async def _register(
        email: str,
        password: str = "SecurePass123",
        name: str = "Test User",
        role: str | None = None,
        department: str = "finance",
    ):
        payload = {
            "name": name,
            "email": email,
            "password": password,
            "department": department,
        }
        if role is not None:
            payload["role"] = role
        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, f"Register failed: {response.text}"
        data = response.json()["data"]
        return {"Authorization": f"Bearer {data['token']}"}, data["user"]

    return _register


@pytest_asyncio.fixture
async def viewer_headers(register):
    headers, _ = await register("viewer@example.com")
    return headers


@pytest_asyncio.fixture
async def accountant_headers(register):
    headers, _ = await register(
        "accountant@example.com", role="accountant", department="sales"
    )
    return headers


@pytest_asyncio.fixture
async def admin_headers(register):
    headers, _ = await register(
        "admin@example.com", role="admin", department="management"
    )
    return headers
