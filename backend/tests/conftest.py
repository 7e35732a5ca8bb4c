"""
SoulSocial Backend: Test Configuration (conftest.py)
======================================================

Shared pytest fixtures for the whole suite.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:          in-memory SQLite engine with every table created
    ├── db_session:         AsyncSession on that engine (service tests)
    ├── test_app:           fresh FastAPI app using db_engine for requests
    ├── test_client:        HTTPX AsyncClient talking to test_app
    ├── published:          counting stand-in for the app's broadcaster.publish
    ├── temp_storage:       temporary directory for file operations
    ├── sample_image_bytes: tiny JPEG generated with Pillow
    └── sample_png_bytes:   tiny PNG generated with Pillow

Each test gets its own database, so tests never see each other's rows.
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports: app.config builds
# its Settings singleton at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="soulsocial_test_storage_")
os.environ["STATIC_ROOT"] = tempfile.mkdtemp(prefix="soulsocial_test_public_")
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum cost keeps hashing fast
os.environ["LOG_LEVEL"] = "WARNING"

from io import BytesIO  # noqa: E402
from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, get_db_session  # noqa: E402
from app.main import create_app  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    One in-memory database per test.

    StaticPool keeps a single connection, otherwise every new connection
    would open a new, empty in-memory database.
    """
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
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_app(session_factory):
    """
    Fresh app (own Broadcaster) whose requests use the test database.

    The override mirrors get_db_session: commit on success, rollback on error.
    """
    application = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient routed straight into the app (no server).

    raise_app_exceptions=False: the catch-all handler's 500 response is
    returned to the test instead of the exception being re-raised.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def published(test_app):
    """
    Counts publish() calls on the app's broadcaster.

    Publishing runs as a background task, which needs a real coroutine
    function, so the mock is wrapped.
    """
    mock = AsyncMock(return_value=0)

    async def publish(*args, **kwargs):
        return await mock(*args, **kwargs)

    test_app.state.broadcaster.publish = publish
    return mock


# ══════════════════════════════════════════════════════════════════════════
# Unit Test Helpers
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


def _encode_image(fmt: str) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 90)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def sample_image_bytes():
    return _encode_image("JPEG")


@pytest.fixture
def sample_png_bytes():
    return _encode_image("PNG")
