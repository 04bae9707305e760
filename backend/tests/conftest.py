"""Shared fixtures: in-memory SQLite app, fake delivery clients, authenticated HTTP client."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.auth import current_active_user
from core.email_client import get_email_client
from core.llm_client import get_llm_client
from core.push_client import get_push_sender
from core.realtime import RealtimeHub
from db.database import Base, get_async_session
from main import app

from fakes import TEST_USER, FakeEmailClient, FakeLLM, FakePushSender


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def hub() -> RealtimeHub:
    return RealtimeHub()


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest_asyncio.fixture
async def client(session_maker, hub, push_sender, email_client, llm):
    async def _session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[current_active_user] = lambda: TEST_USER
    app.dependency_overrides[get_push_sender] = lambda: push_sender
    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_llm_client] = lambda: llm
    app.state.realtime_hub = hub

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
