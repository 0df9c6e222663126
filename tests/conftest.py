"""
Pytest configuration for the application
"""
import os
from typing import AsyncGenerator

# Runtime settings must be in place before the application modules import them
os.environ["ENV"] = "test"
os.environ["DATABASE_URI"] = "sqlite+aiosqlite:///./test_app.db"
os.environ["CACHE__BACKEND_TYPE"] = "memory"
os.environ["PAYMENTS__SECRET_KEY"] = "sk_test_dummy"

import httpx
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine
)

from src.api.deps import get_today
from src.core.config import settings
from src.db.base import Base
from src.db.session import get_db
from src.main import create_application
from src.services import limits as limits_service
from tests.utils import TODAY, Clock, FakeGateway, FakeRedis, seed_catalog


@pytest_asyncio.fixture
async def test_db_engine():
    """
    Create a test database engine.
    """
    engine = create_async_engine(str(settings.DATABASE_URI))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session for a test, seeded with the pricing catalog.
    """
    session_factory = async_sessionmaker(test_db_engine, expire_on_commit=False)
    async with session_factory() as session:
        await seed_catalog(session)
        yield session


@pytest.fixture
def clock() -> Clock:
    return Clock(TODAY)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Patch the limits module to use an in-memory Redis stub."""

    fake = FakeRedis()
    monkeypatch.setattr(limits_service, "_redis_client", fake, raising=False)
    yield fake
    monkeypatch.setattr(limits_service, "_redis_client", None, raising=False)


@pytest.fixture
def gateway(monkeypatch) -> FakeGateway:
    """Replace gateway verification so no HTTP call leaves the test."""

    fake = FakeGateway()
    monkeypatch.setattr("src.services.subscriptions.verify_transaction", fake)
    return fake


@pytest_asyncio.fixture
async def test_app(test_db: AsyncSession, clock: Clock) -> AsyncGenerator[FastAPI, None]:
    """
    Create a FastAPI test application sharing the test session.
    """
    app = create_application()

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield test_db
            await test_db.commit()
        except Exception:
            await test_db.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_today] = lambda: clock.today
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Create an async HTTP client for testing.
    """
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as client:
        yield client
