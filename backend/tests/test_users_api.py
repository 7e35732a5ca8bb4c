"""
SoulSocial Backend: Users and Profile API Tests
=================================================
"""

import pytest

from app.services.auth_service import issue_token


async def _register(client, username="ana", email="ana@example.com", password="pw123", **kwargs):
    return await client.post(
        "/api/users/register",
        data={"username": username, "email": email, "password": password},
        **kwargs,
    )


class TestRegisterLogin:

    @pytest.mark.asyncio
    async def test_register_then_login(self, test_client):
        registered = await _register(test_client)
        assert registered.status_code == 201
        body = registered.json()
        assert body["username"] == "ana"
        assert body["avatar"] is None
        assert body["token"]

        login = await test_client.post(
            "/api/users/login", json={"email": "ana@example.com", "password": "pw123"},
        )
        assert login.status_code == 200
        assert login.json()["username"] == "ana"

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, test_client):
        await _register(test_client)
        response = await test_client.post(
            "/api/users/login", json={"email": "ana@example.com", "password": "nope"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_400(self, test_client):
        assert (await _register(test_client)).status_code == 201

        response = await _register(test_client, username="someone-else")
        assert response.status_code == 400
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_register_with_avatar(self, test_client, sample_image_bytes):
        response = await _register(
            test_client, files={"avatar": ("me.jpg", sample_image_bytes, "image/jpeg")},
        )
        assert response.status_code == 201
        avatar = response.json()["avatar"]
        assert avatar.startswith("/api/files/avatars/")
        assert (await test_client.get(avatar)).content == sample_image_bytes


    @pytest.mark.asyncio
    async def test_overlong_username_or_email_is_400(self, test_client):
        too_long_name = await _register(test_client, username="a" * 65)
        assert too_long_name.status_code == 400
        assert too_long_name.json()["error"] == "validation_error"

        too_long_email = await _register(test_client, email="a" * 250 + "@x.com")
        assert too_long_email.status_code == 400

        assert (await _register(test_client, username="a" * 64)).status_code == 201


class TestProfile:

    @pytest.mark.asyncio
    async def test_get_profile_counts_posts(self, test_client):
        await _register(test_client)
        for title in ("a", "b"):
            await test_client.post("/api/posts", data={"title": title, "text": "x", "username": "ana"})
        await test_client.post("/api/posts", data={"title": "c", "text": "x", "username": "bob"})

        for url in ("/api/users/ana", "/api/profile/ana"):
            response = await test_client.get(url)
            assert response.status_code == 200
            assert response.json() == {
                "username": "ana",
                "bio": "",
                "avatar": None,
                "language": "es",
                "post_count": 2,
            }

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, test_client):
        assert (await test_client.get("/api/users/ghost")).status_code == 404
        assert (await test_client.get("/api/profile/ghost")).status_code == 404

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client):
        await _register(test_client)

        response = await test_client.put("/api/profile/ana", data={"bio": "hola"})
        assert response.status_code == 200
        response = await test_client.put("/api/profile/ana", data={"language": "pt-BR"})
        assert response.status_code == 200

        profile = (await test_client.get("/api/profile/ana")).json()
        assert profile["bio"] == "hola"
        assert profile["language"] == "pt-BR"

    @pytest.mark.asyncio
    async def test_invalid_language_is_400(self, test_client):
        await _register(test_client)
        response = await test_client.put("/api/profile/ana", data={"language": "<script>"})
        assert response.status_code == 400
        assert (await test_client.get("/api/profile/ana")).json()["language"] == "es"

    @pytest.mark.asyncio
    async def test_avatar_replacement_removes_old_file(self, test_client, sample_png_bytes):
        first = (await _register(
            test_client, files={"avatar": ("a.png", sample_png_bytes, "image/png")},
        )).json()["avatar"]

        response = await test_client.put(
            "/api/profile/ana", files={"avatar": ("b.png", sample_png_bytes, "image/png")},
        )
        assert response.status_code == 200

        second = (await test_client.get("/api/profile/ana")).json()["avatar"]
        assert second != first
        assert (await test_client.get(second)).status_code == 200
        assert (await test_client.get(first)).status_code == 404

    @pytest.mark.asyncio
    async def test_update_unknown_user_is_404(self, test_client):
        assert (await test_client.put("/api/profile/ghost", data={"bio": "x"})).status_code == 404

    @pytest.mark.asyncio
    async def test_token_for_other_user_cannot_update(self, test_client):
        await _register(test_client)
        headers = {"Authorization": f"Bearer {issue_token('bob')}"}

        response = await test_client.put("/api/profile/ana", data={"bio": "hacked"}, headers=headers)

        assert response.status_code == 401
        assert (await test_client.get("/api/profile/ana")).json()["bio"] == ""

    @pytest.mark.asyncio
    async def test_update_publishes(self, test_client, published):
        await _register(test_client)

        await test_client.put("/api/profile/ana", data={"bio": "hola"})

        published.assert_awaited_once()
