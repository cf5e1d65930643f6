"""
Test infrastructure for the Article API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- Each test gets its own engine (and therefore its own empty database),
  created and disposed inside the test's event loop.
- Redis is replaced by ``FakeRedis``, an in-memory double of the handful of
  ``redis.asyncio`` commands ``CacheManager`` issues, so cache hits, misses
  and invalidations are exercised for real.
- The app's ``get_db`` and ``get_cache`` dependencies are overridden so
  every request uses the test session factory and the fake-backed cache.
"""
import os

# Must be set before ``app`` is imported: settings are read at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-signing-secret-at-least-32-bytes")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.cache import CacheManager
from app.database import Base, get_db
from app.dependencies import get_cache
from app.main import app
from app.middleware import install_query_counter
from tests.utils import FakeRedis

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine_test():
    """A fresh in-memory database with all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # Register the per-request SQL query counter on the test engine.
    install_query_counter(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine_test):
    return async_sessionmaker(
        engine_test,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call services directly.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_statements(engine_test) -> list[str]:
    """Every SQL statement the test engine executes from this point on."""
    seen: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine_test.sync_engine, "before_cursor_execute", _record)
    yield seen
    event.remove(engine_test.sync_engine, "before_cursor_execute", _record)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def test_cache(fake_redis) -> CacheManager:
    return CacheManager(fake_redis)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def async_client(session_factory, test_cache) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the database and cache dependencies pointed at the test doubles.
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
    app.dependency_overrides[get_cache] = lambda: test_cache
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
