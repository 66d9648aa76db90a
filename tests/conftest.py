"""pytest fixtures for Alt Sniper backend tests.

Provides:
- engine: Function-scoped SQLite (aiosqlite) engine with all tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- fake_vision / recorded_sleeps: Stand-ins for Gemini and asyncio.sleep
- image_transport: httpx MockTransport serving product images
"""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from typing import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from altsniper import models  # noqa: E402, F401
from altsniper.core.database import create_engine, create_session_factory  # noqa: E402
from altsniper.services.captioning.caption_generator import CaptionGenerator  # noqa: E402
from altsniper.uow import create_uow_factory  # noqa: E402
from helpers import FakeVisionClient, RecordingSleep  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Provide a fresh file-backed SQLite database per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'altsniper.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest_asyncio.fixture(scope="function")
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = create_session_factory(engine)

    async with session_factory() as session:
        yield session
        await session.rollback()

@pytest_asyncio.fixture(scope="function")
async def uow_factory(engine):
    """Provide function-scoped UnitOfWork factory bound to the test database."""
    return create_uow_factory(create_session_factory(engine))

@pytest.fixture
def fake_vision() -> FakeVisionClient:
    return FakeVisionClient()

@pytest.fixture
def recorded_sleeps() -> RecordingSleep:
    return RecordingSleep()

@pytest.fixture
def image_transport() -> httpx.MockTransport:
    """Serve a tiny JPEG for any image URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=b"\xff\xd8\xff\xe0fake", headers={"content-type": "image/jpeg"}
        )

    return httpx.MockTransport(handler)

@pytest.fixture
def caption_generator(
    uow_factory, fake_vision, image_transport, recorded_sleeps
) -> CaptionGenerator:
    return CaptionGenerator(
        uow_factory=uow_factory,
        api_key="test-gemini-key",
        vision_client=fake_vision,
        transport=image_transport,
        sleep=recorded_sleeps,
    )
