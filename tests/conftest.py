# tests/conftest.py

from __future__ import annotations

import os
from pathlib import Path

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from tms.core.database import build_engine, get_db  # noqa: E402
from tms.core.session import SessionStore, get_session_store  # noqa: E402
from tms.main import app  # noqa: E402
from tms.models import Base, User  # noqa: E402
from tms.services import identity  # noqa: E402

from .fakes import FakeRedis  # noqa: E402


@pytest.fixture()
async def engine(tmp_path: Path):
    """File-backed SQLite per test, so every connection sees the same data."""
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tms.sqlite3'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def store(fake_redis: FakeRedis) -> SessionStore:
    return SessionStore(fake_redis, idle_minutes=30)


@pytest.fixture()
async def client(session_factory, store: SessionStore):
    """HTTP client against the app with the test database and fake Redis wired in."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def admin(db) -> User:
    return await identity.register_initial_admin(db, "root", "pw1")


@pytest.fixture()
async def alice(db) -> User:
    return await identity.register(db, "alice", "pw2")


@pytest.fixture()
async def bob(db) -> User:
    return await identity.register(db, "bob", "pw3")