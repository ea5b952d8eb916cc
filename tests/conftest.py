"""Shared test fixtures."""

from __future__ import annotations

import os

# Settings are read once and cached; configure the environment before any app import.
os.environ["CHECKLIST_JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["CHECKLIST_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CHECKLIST_RATE_LIMIT_ENABLED"] = "false"
os.environ["CHECKLIST_LOG_FORMAT"] = "console"
os.environ["CHECKLIST_LOG_LEVEL"] = "WARNING"
os.environ.pop("CHECKLIST_REDIS_URL", None)

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from checklist.auth.password import hash_password  # noqa: E402
from checklist.config import Settings, get_settings  # noqa: E402
from checklist.database import close_db, get_engine, get_session, init_db  # noqa: E402
from checklist.db import models  # noqa: E402, F401
from checklist.db.base import Base  # noqa: E402
from checklist.db.models import User  # noqa: E402
from checklist.main import create_app  # noqa: E402

TEST_PASSWORD = "SecureP@ss1"


async def _init_schema(url: str) -> None:
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """A fresh SQLite database file per test with the full schema."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'checklist.db'}"
    await _init_schema(url)
    yield url
    await close_db()


@pytest.fixture
def app(database: str) -> FastAPI:
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. ASGITransport skips the lifespan; ``database`` did its work."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_app(database: str) -> Callable[..., FastAPI]:
    """Build an app with overridden settings (e.g. rate limiting switched on)."""

    def _make(**overrides: Any) -> FastAPI:
        settings = Settings(**{**get_settings().model_dump(), **overrides})
        return create_app(settings)

    return _make


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for test assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest.fixture
def mock_email_service(monkeypatch):
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("checklist.auth.router.get_email_service", lambda *a, **kw: mock_service)
    monkeypatch.setattr("checklist.auth.password_reset.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest.fixture
def make_user(app: FastAPI, db_session: AsyncSession) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Insert a user directly and sign a token for it."""

    async def _make(username: str = "alice", verified: bool = True, password: str = TEST_PASSWORD) -> dict[str, Any]:
        user = User(
            email=f"{username}@example.com",
            username=username,
            password_hash=hash_password(password),
            email_verified=verified,
        )
        db_session.add(user)
        await db_session.commit()
        token = app.state.token_signer.issue(user)
        return {
            "id": user.id,
            "username": username,
            "email": user.email,
            "password": password,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest.fixture
def build_list(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """
    Create a small list through the API.

    Shape: two sections; the first has topic "Arrays" (two resources) with
    subtopic "Two pointers" (one resource) and topic "Strings"; the second
    has topic "Graphs".
    """

    async def _build(headers: dict[str, str], title: str = "DSA Roadmap", is_public: bool = False) -> dict[str, Any]:
        resp = await client.post(
            "/api/custom-lists",
            json={"title": title, "description": "Core data structures", "is_public": is_public},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        list_id = resp.json()["id"]

        async def post(path: str, body: dict[str, Any]) -> str:
            r = await client.post(path, json=body, headers=headers)
            assert r.status_code == 201, r.text
            return r.json()["id"]

        basics = await post("/api/sections", {"list_id": list_id, "title": "Basics"})
        advanced = await post("/api/sections", {"list_id": list_id, "title": "Advanced"})
        arrays = await post("/api/topics", {"section_id": basics, "title": "Arrays"})
        two_pointers = await post(
            "/api/topics", {"section_id": basics, "title": "Two pointers", "parent_topic_id": arrays}
        )
        strings = await post("/api/topics", {"section_id": basics, "title": "Strings"})
        graphs = await post("/api/topics", {"section_id": advanced, "title": "Graphs"})
        video = await post(
            "/api/resources",
            {"topic_id": arrays, "type": "video", "title": "Arrays intro", "url": "https://www.youtube.com/watch?v=1"},
        )
        practice = await post(
            "/api/resources",
            {"topic_id": arrays, "type": "practice", "title": "Two Sum", "url": "https://leetcode.com/problems/two-sum"},
        )
        sub_note = await post(
            "/api/resources",
            {"topic_id": two_pointers, "type": "note", "title": "Notes", "url": "https://example.com/notes"},
        )
        return {
            "list_id": list_id,
            "sections": {"basics": basics, "advanced": advanced},
            "topics": {"arrays": arrays, "two_pointers": two_pointers, "strings": strings, "graphs": graphs},
            "resources": {"video": video, "practice": practice, "sub_note": sub_note},
        }

    return _build
