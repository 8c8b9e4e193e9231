"""
Shared test fixtures for the Publishing API tests.

Provides database session management, the lifecycle manager wired to a
recording invalidation sink, seeded authors/categories/tags, and a test client.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from publishing.config import settings
from publishing.database import Base, enable_sqlite_foreign_keys, get_db
from publishing.main import app
from publishing.models import Category, Post, Tag, User
from publishing.routers.posts import get_invalidation_sink
from publishing.schemas.posts import PostCreate
from publishing.services.cache import RecordingInvalidationSink
from publishing.services.posts import PostLifecycleManager

# Test database URL (in-memory SQLite unless TEST_DATABASE_URL points at PostgreSQL)
TEST_DATABASE_URL = settings.test_database_url
USES_SQLITE = TEST_DATABASE_URL.startswith("sqlite")


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh engine per test with tables created, dropped afterwards.

    SQLite in-memory databases live only as long as their connection, so they
    share a single StaticPool connection; PostgreSQL uses NullPool.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool if USES_SQLITE else NullPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session bound to the per-test database."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# --- Lifecycle Fixtures ---


@pytest.fixture
def sink() -> RecordingInvalidationSink:
    """Invalidation sink that only records what it receives."""
    return RecordingInvalidationSink()


@pytest.fixture
def manager(db_session: AsyncSession, sink: RecordingInvalidationSink) -> PostLifecycleManager:
    return PostLifecycleManager(db_session, sink)


@pytest_asyncio.fixture
async def author(db_session: AsyncSession) -> User:
    user = User(name="Test Author", email="author@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


async def _create_category(db_session: AsyncSession, name: str, slug: str) -> Category:
    category = Category(name=name, slug=slug)
    db_session.add(category)
    await db_session.commit()
    return category


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> Category:
    return await _create_category(db_session, "Engineering", "engineering")


@pytest_asyncio.fixture
async def other_category(db_session: AsyncSession) -> Category:
    return await _create_category(db_session, "Design", "design")


@pytest_asyncio.fixture
async def tags(db_session: AsyncSession) -> list[Tag]:
    created = [
        Tag(name="Python", slug="python"),
        Tag(name="Databases", slug="databases"),
        Tag(name="Caching", slug="caching"),
    ]
    db_session.add_all(created)
    await db_session.commit()
    return created


@pytest.fixture
def make_post(
    manager: PostLifecycleManager,
    author: User,
    sink: RecordingInvalidationSink,
) -> Callable[..., Awaitable[Post]]:
    """
    Factory fixture for creating posts through the lifecycle manager.

    The recording sink is reset afterwards so tests only see their own signals.
    """

    async def _make_post(slug: str = "hello-world", **overrides: Any) -> Post:
        data: dict[str, Any] = {
            "title": "Hello World",
            "slug": slug,
            "content": "First draft",
            "author_id": author.id,
        }
        data.update(overrides)
        post = await manager.create(PostCreate(**data))
        sink.reset()
        return post

    return _make_post


# --- HTTP Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession, sink: RecordingInvalidationSink
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.
    Overrides the database and invalidation sink dependencies.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invalidation_sink] = lambda: sink

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-02-01 12:00:00"):
            # time is frozen
    """
    from freezegun import freeze_time

    return freeze_time
