from __future__ import annotations

import base64
import os
import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

# Settings are cached on first import, so the environment is fixed up front
_DATA_DIR = tempfile.mkdtemp(prefix="tubekit-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DATA_DIR}/tubekit-test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["MUX_WEBHOOK_SECRET"] = "mux-test-secret"
os.environ["IDENTITY_WEBHOOK_SECRET"] = "whsec_" + base64.b64encode(b"identity-test-secret").decode()
os.environ["UPLOADTHING_API_KEY"] = "sk_test_uploads"
os.environ["WORKFLOW_MAX_ATTEMPTS"] = "3"
os.environ["WORKFLOW_RETRY_BACKOFF_SECONDS"] = "0"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT"] = "10/10 seconds"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.database import Base, async_session_maker, engine  # noqa: E402
from app.limiter import limiter  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Category, User, Video, VideoStatus, VideoVisibility  # noqa: E402
from app.utils import cache  # noqa: E402
from app.utils.auth import create_access_token  # noqa: E402

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
async def _fresh_state() -> AsyncIterator[None]:  # pyright: ignore[reportUnusedFunction]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    limiter.reset()
    cache._memory_store.clear()
    yield


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def make_user() -> Callable[..., Awaitable[User]]:
    async def _make(name: str = "Test User", external_id: str | None = None) -> User:
        async with async_session_maker() as db:
            user = User(
                external_id=external_id or f"user_{uuid4().hex[:16]}",
                name=name,
                image_url="https://img.example.com/avatar.png",
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    return _make


@pytest.fixture
def make_video() -> Callable[..., Awaitable[Video]]:
    async def _make(user: User, **fields: Any) -> Video:
        values: dict[str, Any] = {
            "title": "A video",
            "visibility": VideoVisibility.PUBLIC.value,
            "mux_status": VideoStatus.READY.value,
        }
        values.update(fields)
        async with async_session_maker() as db:
            video = Video(user_id=user.id, **values)
            db.add(video)
            await db.commit()
            await db.refresh(video)
            return video

    return _make


@pytest.fixture
def make_category() -> Callable[..., Awaitable[Category]]:
    async def _make(name: str = "Music") -> Category:
        async with async_session_maker() as db:
            category = Category(name=name, description=f"Videos related to {name.lower()}")
            db.add(category)
            await db.commit()
            await db.refresh(category)
            return category

    return _make


@pytest.fixture
def auth() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.external_id)}"}

    return _headers


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture
def timeline() -> Callable[[int], datetime]:
    return at
