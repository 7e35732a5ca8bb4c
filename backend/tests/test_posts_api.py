"""
SoulSocial Backend: Posts API Tests
=====================================

End-to-end through the HTTP layer: feed, CRUD, likes, comments, the
realtime publish that follows every mutation, and the error body format.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.services.auth_service import issue_token


async def _create(client, title="Hi", text="hello", username="ana", **kwargs):
    data = {"title": title, "text": text}
    if username is not None:
        data["username"] = username
    response = await client.post("/api/posts", data=data, **kwargs)
    assert response.status_code == 201, response.text
    return response.json()["post"]


class TestFeed:

    @pytest.mark.asyncio
    async def test_scenario_create_list_like_unlike(self, test_client):
        post = await _create(test_client, title="Hi", text="hello", username="ana")

        feed = (await test_client.get("/api/posts")).json()
        assert len(feed) == 1
        assert feed[0]["user"] == "ana"
        assert feed[0]["likes"] == 0
        assert feed[0]["comments"] == []

        liked = await test_client.post(f"/api/posts/{post['id']}/like", json={"username": "ana"})
        assert liked.json() == {"likes": 1, "liked": True}

        unliked = await test_client.post(f"/api/posts/{post['id']}/like", json={"username": "ana"})
        assert unliked.json() == {"likes": 0, "liked": False}

    @pytest.mark.asyncio
    async def test_feed_is_newest_first_with_comments_oldest_first(self, test_client):
        first = await _create(test_client, title="first")
        second = await _create(test_client, title="second")

        for text in ("one", "two"):
            response = await test_client.post(
                f"/api/posts/{first['id']}/comment", json={"user": "bob", "text": text},
            )
            assert response.status_code == 200

        feed = (await test_client.get("/api/posts")).json()
        assert [p["id"] for p in feed] == [second["id"], first["id"]]
        assert [c["text"] for c in feed[1]["comments"]] == ["one", "two"]
        assert feed[0]["comments"] == []

    @pytest.mark.asyncio
    async def test_missing_username_is_anonymous(self, test_client):
        post = await _create(test_client, username=None)
        assert post["user"] == "Anonymous"

    @pytest.mark.asyncio
    async def test_create_with_image(self, test_client, sample_image_bytes):
        post = await _create(
            test_client,
            files={"image": ("pic.jpg", sample_image_bytes, "image/jpeg")},
        )
        assert post["image"].startswith("/api/files/posts/")

        served = await test_client.get(post["image"])
        assert served.status_code == 200
        assert served.content == sample_image_bytes
        assert served.headers["cache-control"] == "public, max-age=86400"

    @pytest.mark.asyncio
    async def test_create_with_non_image_rejected(self, test_client):
        response = await test_client.post(
            "/api/posts",
            data={"title": "t", "text": "x", "username": "ana"},
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert (await test_client.get("/api/posts")).json() == []

    @pytest.mark.asyncio
    async def test_html_named_as_png_rejected(self, test_client):
        response = await test_client.post(
            "/api/posts",
            data={"title": "t", "text": "x", "username": "ana"},
            files={"image": ("evil.png", b"<html><script>alert(1)</script></html>", "image/png")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert (await test_client.get("/api/posts")).json() == []


    @pytest.mark.asyncio
    async def test_long_title_is_stored_whole(self, test_client):
        post = await _create(test_client, title="t" * 300)
        assert (await test_client.get(f"/api/posts/{post['id']}")).json()["title"] == "t" * 300

    @pytest.mark.asyncio
    async def test_overlong_username_is_400(self, test_client):
        response = await test_client.post("/api/posts", data={"title": "t", "text": "x", "username": "a" * 65})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert (await test_client.get("/api/posts")).json() == []

        post = await _create(test_client)
        like = await test_client.post(f"/api/posts/{post['id']}/like", json={"username": "b" * 65})
        assert like.status_code == 400
        comment = await test_client.post(
            f"/api/posts/{post['id']}/comment", json={"user": "c" * 65, "text": "hi"},
        )
        assert comment.status_code == 400

class TestSinglePost:

    @pytest.mark.asyncio
    async def test_get_invalid_id_is_400(self, test_client):
        response = await test_client.get("/api/posts/abc")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "not a valid post id" in body["message"]
        assert body["request_id"] == response.headers["x-request-id"]

    @pytest.mark.asyncio
    async def test_get_unknown_id_is_404(self, test_client):
        response = await test_client.get(f"/api/posts/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(self, test_client):
        post = await _create(test_client, title="old title", text="old text")

        response = await test_client.put(f"/api/posts/{post['id']}", json={"title": "new title"})
        assert response.status_code == 200

        updated = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert updated["title"] == "new title"
        assert updated["text"] == "old text"
        assert updated["user"] == post["user"]

    @pytest.mark.asyncio
    async def test_update_unknown_post(self, test_client):
        response = await test_client.put(f"/api/posts/{uuid.uuid4()}", json={"title": "x"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_cascades_to_comments_and_likes(self, test_client):
        post = await _create(test_client)
        await test_client.post(f"/api/posts/{post['id']}/comment", json={"user": "bob", "text": "hey"})
        await test_client.post(f"/api/posts/{post['id']}/like", json={"username": "bob"})

        response = await test_client.delete(f"/api/posts/{post['id']}")
        assert response.status_code == 200

        assert (await test_client.get(f"/api/posts/{post['id']}")).status_code == 404
        assert (await test_client.get("/api/posts")).json() == []

        # A new post never inherits the old likes/comments
        again = await _create(test_client)
        fetched = (await test_client.get(f"/api/posts/{again['id']}")).json()
        assert fetched["comments"] == [] and fetched["liked_by"] == []

    @pytest.mark.asyncio
    async def test_delete_invalid_id(self, test_client):
        assert (await test_client.delete("/api/posts/not-an-id")).status_code == 400


class TestLikes:

    @pytest.mark.asyncio
    async def test_likes_track_distinct_users(self, test_client):
        post = await _create(test_client)
        url = f"/api/posts/{post['id']}/like"

        assert (await test_client.post(url, json={"username": "ana"})).json()["likes"] == 1
        assert (await test_client.post(url, json={"username": "bob"})).json()["likes"] == 2
        assert (await test_client.post(url, json={"username": "ana"})).json()["likes"] == 1

        fetched = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert fetched["likes"] == len(fetched["liked_by"]) == 1
        assert fetched["liked_by"] == ["bob"]

    @pytest.mark.asyncio
    async def test_like_without_username_is_401(self, test_client):
        post = await _create(test_client)
        response = await test_client.post(f"/api/posts/{post['id']}/like", json={})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_like_unknown_post_is_404(self, test_client):
        response = await test_client.post(f"/api/posts/{uuid.uuid4()}/like", json={"username": "ana"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_like_uses_token_subject(self, test_client):
        post = await _create(test_client)
        headers = {"Authorization": f"Bearer {issue_token('ana')}"}

        response = await test_client.post(f"/api/posts/{post['id']}/like", json={}, headers=headers)
        assert response.json() == {"likes": 1, "liked": True}

    @pytest.mark.asyncio
    async def test_token_cannot_act_as_someone_else(self, test_client):
        post = await _create(test_client)
        headers = {"Authorization": f"Bearer {issue_token('ana')}"}

        response = await test_client.post(
            f"/api/posts/{post['id']}/like", json={"username": "bob"}, headers=headers,
        )
        assert response.status_code == 401
        assert "details" not in response.json()
        assert (await test_client.get(f"/api/posts/{post['id']}")).json()["likes"] == 0

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, test_client):
        post = await _create(test_client)
        response = await test_client.post(
            f"/api/posts/{post['id']}/like",
            json={"username": "ana"},
            headers={"Authorization": "Bearer garbage"},
        )
        assert response.status_code == 401


class TestComments:

    @pytest.mark.asyncio
    async def test_comment_defaults_to_anonymous(self, test_client):
        post = await _create(test_client)
        response = await test_client.post(f"/api/posts/{post['id']}/comment", json={"text": "nice"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Comment added"
        assert body["comment"]["user"] == "Anonymous"
        assert body["comment"]["post_id"] == post["id"]

    @pytest.mark.asyncio
    async def test_blank_comment_is_400(self, test_client):
        post = await _create(test_client)
        response = await test_client.post(
            f"/api/posts/{post['id']}/comment", json={"user": "bob", "text": "   "},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_comment_on_unknown_post_is_accepted_but_never_shown(self, test_client):
        await _create(test_client)
        response = await test_client.post(
            f"/api/posts/{uuid.uuid4()}/comment", json={"user": "bob", "text": "lost"},
        )
        assert response.status_code == 200

        feed = (await test_client.get("/api/posts")).json()
        assert all(p["comments"] == [] for p in feed)

    @pytest.mark.asyncio
    async def test_comment_invalid_post_id(self, test_client):
        response = await test_client.post("/api/posts/xyz/comment", json={"user": "bob", "text": "hi"})
        assert response.status_code == 400


class TestRealtimePublish:

    @pytest.mark.asyncio
    async def test_every_mutation_publishes_once(self, test_client, published):
        post = await _create(test_client)
        assert published.await_count == 1

        await test_client.put(f"/api/posts/{post['id']}", json={"text": "edited"})
        assert published.await_count == 2

        await test_client.post(f"/api/posts/{post['id']}/like", json={"username": "ana"})
        assert published.await_count == 3

        await test_client.post(f"/api/posts/{post['id']}/comment", json={"user": "ana", "text": "x"})
        assert published.await_count == 4

        await test_client.delete(f"/api/posts/{post['id']}")
        assert published.await_count == 5

    @pytest.mark.asyncio
    async def test_reads_and_failures_do_not_publish(self, test_client, published):
        await test_client.get("/api/posts")
        await test_client.get("/api/posts/abc")
        await test_client.post(f"/api/posts/{uuid.uuid4()}/like", json={"username": "ana"})
        await test_client.delete(f"/api/posts/{uuid.uuid4()}")

        published.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stalled_client_does_not_block_writes(self, test_client, test_app, monkeypatch):
        monkeypatch.setattr(settings, "realtime_send_timeout", 0.05)
        stalled = AsyncMock()

        async def never_completes(*args, **kwargs):
            await asyncio.Event().wait()

        stalled.send_json.side_effect = never_completes
        test_app.state.broadcaster._connections.add(stalled)

        response = await asyncio.wait_for(
            test_client.post("/api/posts", data={"title": "Hi", "text": "hello"}), timeout=5,
        )

        assert response.status_code == 201
        assert test_app.state.broadcaster.connection_count == 0


class TestOwnershipEnforcement:

    @pytest.mark.asyncio
    async def test_only_author_can_edit_when_tokens_required(self, test_client, monkeypatch):
        ana = {"Authorization": f"Bearer {issue_token('ana')}"}
        bob = {"Authorization": f"Bearer {issue_token('bob')}"}
        post = await _create(test_client, username="ana", headers=ana)

        monkeypatch.setattr(settings, "require_session_token", True)

        assert (await test_client.put(f"/api/posts/{post['id']}", json={"title": "x"})).status_code == 401
        assert (await test_client.put(f"/api/posts/{post['id']}", json={"title": "x"}, headers=bob)).status_code == 401
        forbidden = await test_client.delete(f"/api/posts/{post['id']}", headers=bob)
        assert forbidden.status_code == 401
        assert "details" not in forbidden.json()
        assert (await test_client.put(f"/api/posts/{post['id']}", json={"title": "x"}, headers=ana)).status_code == 200
        assert (await test_client.delete(f"/api/posts/{post['id']}", headers=ana)).status_code == 200


class TestResponseHeaders:

    @pytest.mark.asyncio
    async def test_api_responses_are_not_cacheable(self, test_client):
        response = await test_client.get("/api/posts")
        assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate, private"
        assert response.headers["pragma"] == "no-cache"
        assert response.headers["expires"] == "0"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/api/posts", headers={"X-Request-ID": "abc12345"})
        assert response.headers["x-request-id"] == "abc12345"
