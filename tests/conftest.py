"""Shared fixtures.

Each test gets its own SQLite file with the schema created and three
users (two regular, one guest). ``NullPool`` means no connection outlives
the event loop that opened it, so coroutines can be driven with
``asyncio.run`` while the app under ``TestClient`` runs in its own loop.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import get_db
from app.main import app
from app.models import Base, User
from app.routes.chat import get_llm_provider
from app.services.llm import BaseLLMProvider


class FakeClock:
    """Ticks one second per call so timestamps are strictly increasing."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class FakeProvider(BaseLLMProvider):
    """Records calls and answers with a canned reply."""

    def __init__(self, reply="Hello from the model"):
        super().__init__(api_key="test")
        self.reply = reply
        self.calls = []
        self.error = None

    async def chat(self, model_name, messages, system_prompt=None):
        self.calls.append({
            "model_name": model_name,
            "messages": list(messages),
            "system_prompt": system_prompt,
        })
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async def setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with AsyncSession(engine) as session:
            session.add_all([
                User(id="u1", email="u1@example.com", user_type="regular"),
                User(id="u2", email="u2@example.com", user_type="regular"),
                User(id="g1", user_type="guest"),
            ])
            await session.commit()

    asyncio.run(setup())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def run(session_factory):
    """Run ``fn(session)`` to completion on a fresh session and event loop."""
    def _run(fn):
        async def main():
            async with session_factory() as session:
                return await fn(session)
        return asyncio.run(main())
    return _run


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(session_factory, provider):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def u1():
    return {"X-User-Id": "u1"}
