"""
SoulSocial Backend: Health, Frontend and Error Handling Tests
===============================================================
"""

from unittest.mock import patch

import pytest

from app.config import settings
from app.exceptions import DatabaseError


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["realtime_connections"] == 0
        assert body["uptime_seconds"] >= 0


class TestFrontend:

    @pytest.fixture(autouse=True)
    def _static_root(self, tmp_path, monkeypatch):
        self.static_root = tmp_path / "public"
        self.static_root.mkdir()
        monkeypatch.setattr(settings, "static_root", str(self.static_root))

    @pytest.mark.asyncio
    async def test_unknown_page_gets_index(self, test_client):
        (self.static_root / "index.html").write_text("<html>SoulSocial</html>")

        for path in ("/", "/profile/ana", "/some/deep/link"):
            response = await test_client.get(path)
            assert response.status_code == 200
            assert "SoulSocial" in response.text

    @pytest.mark.asyncio
    async def test_existing_asset_is_served(self, test_client):
        (self.static_root / "index.html").write_text("<html></html>")
        (self.static_root / "static").mkdir()
        (self.static_root / "static" / "script.js").write_text("console.log('hi')")

        response = await test_client.get("/static/script.js")
        assert response.status_code == 200
        assert "console.log" in response.text

    @pytest.mark.asyncio
    async def test_missing_build_is_404(self, test_client):
        assert (await test_client.get("/")).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_api_path_is_json_404(self, test_client):
        (self.static_root / "index.html").write_text("<html></html>")

        response = await test_client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestErrorHandling:

    @pytest.mark.asyncio
    async def test_database_error_hides_details(self, test_client):
        with patch(
            "app.services.post_service.post_service.list_posts",
            side_effect=DatabaseError(message="connection refused to 10.0.0.5", context={"dsn": "secret"}),
        ):
            response = await test_client.get("/api/posts")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert "10.0.0.5" not in body["message"]
        assert "details" not in body

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(self, test_client):
        with patch(
            "app.services.post_service.post_service.list_posts",
            side_effect=RuntimeError("boom"),
        ):
            response = await test_client.get("/api/posts")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert "boom" not in body["message"]

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, test_client):
        response = await test_client.get("/api/files/posts/2024/01/01/missing.jpg")
        assert response.status_code == 404
