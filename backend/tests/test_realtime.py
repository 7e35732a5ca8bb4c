"""
SoulSocial Backend: Realtime Channel Tests
============================================

WebSockets need Starlette's TestClient (httpx's ASGITransport speaks HTTP
only). The TestClient runs the app on its own event loop, so these tests use
a file-backed SQLite database with NullPool: every request opens its
connection on that loop.
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient

from app.database import Base, get_db_session
from app.main import create_app


@pytest.fixture
def realtime_app(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'realtime.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


class TestRealtimeChannel:

    def test_mutation_pushes_posts_updated(self, realtime_app):
        with TestClient(realtime_app) as client, client.websocket_connect("/ws") as ws:
            response = client.post("/api/posts", data={"title": "Hi", "text": "hello", "username": "ana"})
            assert response.status_code == 201
            assert ws.receive_json() == {"event": "postsUpdated"}

            post_id = response.json()["post"]["id"]
            client.post(f"/api/posts/{post_id}/like", json={"username": "ana"})
            assert ws.receive_json() == {"event": "postsUpdated"}

    def test_every_client_is_notified(self, realtime_app):
        with TestClient(realtime_app) as client, \
                client.websocket_connect("/ws") as first, \
                client.websocket_connect("/ws") as second:
            assert client.get("/health").json()["realtime_connections"] == 2

            client.post("/api/posts", data={"title": "Hi", "text": "hello"})

            assert first.receive_json() == {"event": "postsUpdated"}
            assert second.receive_json() == {"event": "postsUpdated"}
