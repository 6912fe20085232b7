"""
Test configuration and fixtures.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool);
API tests drive the FastAPI app through httpx's ASGITransport with get_db
overridden to that database.
"""
import itertools
import os
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Must be set before app.config is imported
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TRACING_ENABLED"] = "false"

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User  # noqa: E402
from app.security import issue_token  # noqa: E402


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests; nothing is committed."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory that inserts a user into the service-level test session."""
    counter = itertools.count(1)

    async def _make(name: str | None = None, **profile) -> User:
        n = next(counter)
        user = User(
            name=name or f"User {n}",
            email=f"user{n}@acme.io",
            password_hash="not-a-real-hash",
            **profile,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def api_user(session_factory):
    """Factory that commits a user and returns (user, auth headers)."""
    counter = itertools.count(1)

    async def _make(name: str | None = None) -> tuple[User, dict]:
        n = next(counter)
        async with session_factory() as session:
            user = User(
                name=name or f"Member {n}",
                email=f"member{n}@acme.io",
                password_hash="not-a-real-hash",
            )
            session.add(user)
            await session.commit()
        token = issue_token(user.id, user.email)
        return user, {"Authorization": f"Bearer {token}"}

    return _make
