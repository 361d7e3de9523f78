"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own SQLite database file (aiosqlite). Request handlers
share the test session through the ``get_db`` override; post-commit side
effects open their own sessions from the same engine through the
``get_session_factory`` override, exactly as they do in production.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from eventhub.main import app
from eventhub.db.base import Base
from eventhub.db.session import get_db, get_session_factory
from eventhub.models import Event, User

from helpers import bearer, make_event, make_user


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependencies with the test database."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# Fixtures

@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Ada Admin", "admin@startuplab.test", role="admin")


@pytest_asyncio.fixture
async def attendee(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Ravi Founder", "ravi@example.com")


@pytest_asyncio.fixture
async def other_attendee(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Mina Builder", "mina@example.com")


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return bearer(admin)


@pytest_asyncio.fixture
async def attendee_headers(attendee: User) -> dict:
    return bearer(attendee)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """An event with 10 free slots."""
    return await make_event(db_session)


@pytest_asyncio.fixture
async def full_event(db_session: AsyncSession) -> Event:
    """An event with no slots left."""
    return await make_event(db_session, title="Sold Out Pitch Night", total_slots=5, available_slots=0)
