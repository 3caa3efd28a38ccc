"""
Integration Tests for the public note API.

Exercises the editor-facing endpoints end to end over the local target.
Bodies are flat JSON; errors use the standard error envelope.
"""

import pytest

from cloudnote.core import rate_limit
from cloudnote.core.concurrency import drain_background_tasks
from cloudnote.core.rate_limit import SlidingWindowRateLimiter


async def read(client, path: str):
    """GET a note and let its view count increment land."""
    response = await client.get(f"/api/note/{path}")
    await drain_background_tasks(timeout=5)
    return response


class TestReadAndSave:
    @pytest.mark.asyncio
    async def test_unknown_note(self, client):
        response = await client.get("/api/note/nothing")

        assert response.status_code == 200
        assert response.json() == {"exists": False}

    @pytest.mark.asyncio
    async def test_create_then_read(self, client):
        saved = await client.post("/api/note/abc", json={"content": "hello"})
        assert saved.status_code == 200
        assert saved.json() == {"success": True}

        body = (await read(client, "abc")).json()

        assert body["exists"] is True
        assert body["path"] == "abc"
        assert body["content"] == "hello"
        assert body["view_count"] == 1
        assert body["created_at"].endswith("Z")

    @pytest.mark.asyncio
    async def test_content_is_sanitized(self, client):
        await client.post("/api/note/abc", json={"content": "<p onclick='x()'>hi</p><script>x()</script>"})

        body = (await read(client, "abc")).json()

        assert body["content"] == "<p >hi</p>"

    @pytest.mark.asyncio
    async def test_empty_new_note_rejected(self, client, api):
        response = await client.post("/api/note/abc", json={"content": "   "})

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert (await client.get("/api/note/abc")).json() == {"exists": False}

    @pytest.mark.asyncio
    async def test_existing_note_cannot_be_emptied(self, client, api, storage):
        await client.post("/api/note/abc", json={"content": "hello"})

        response = await client.post("/api/note/abc", json={"content": "   "})

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert (await storage.notes.get("abc")).content == "hello"
        assert await storage.notes.find_latest_blank() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["has%20space", "a" * 21, "admin", "dot.ted"])
    async def test_invalid_paths_rejected(self, client, api, path):
        api.assert_error(await client.get(f"/api/note/{path}"), 400, "VAL_VALIDATION_ERROR")
        api.assert_error(
            await client.post(f"/api/note/{path}", json={"content": "x"}),
            400,
            "VAL_VALIDATION_ERROR",
        )


class TestPopularityCache:
    @pytest.mark.asyncio
    async def test_third_read_populates_cache_and_save_invalidates(self, client, memory_cache):
        await client.post("/api/note/abc", json={"content": "v1"})
        await read(client, "abc")
        await read(client, "abc")
        assert await memory_cache.get("note:abc") is None

        third = (await read(client, "abc")).json()

        assert third["view_count"] == 3
        assert memory_cache.ttl("note:abc") == pytest.approx(360)

        await client.post("/api/note/abc", json={"content": "v2"})
        assert await memory_cache.get("note:abc") is None
        assert (await read(client, "abc")).json()["content"] == "v2"

    @pytest.mark.asyncio
    async def test_cached_reads_still_count_views(self, client, storage):
        await client.post("/api/note/abc", json={"content": "v1"})
        for _ in range(5):
            await read(client, "abc")

        assert (await storage.notes.get("abc")).view_count == 5


class TestLocks:
    @pytest.mark.asyncio
    async def test_read_lock_flow(self, client, api, memory_cache):
        await client.post("/api/note/abc", json={"content": "secret"})

        locked = await client.post("/api/note/abc/lock", json={"password": "p1", "lock_type": "read"})
        assert locked.json() == {"success": True}

        challenge = (await read(client, "abc")).json()
        assert challenge == {
            "exists": True,
            "is_locked": True,
            "requires_password": True,
            "lock_type": "read",
        }
        assert await memory_cache.get("note:abc") is None

        api.assert_error(
            await client.post("/api/note/abc/unlock", json={"password": "nope"}),
            403,
            "AUTHZ_FORBIDDEN",
        )

        unlocked = await client.post("/api/note/abc/unlock", json={"password": "p1"})
        assert unlocked.status_code == 200
        assert unlocked.json()["success"] is True
        assert unlocked.json()["note"]["content"] == "secret"

    @pytest.mark.asyncio
    async def test_write_lock_flow(self, client, api):
        await client.post("/api/note/abc", json={"content": "v1"})
        await client.post("/api/note/abc/lock", json={"password": "p1", "lock_type": "write"})

        assert (await read(client, "abc")).json()["content"] == "v1"

        api.assert_error(await client.post("/api/note/abc", json={"content": "v2"}), 403)
        api.assert_error(
            await client.post("/api/note/abc", json={"content": "v2", "password": "bad"}),
            403,
        )

        ok = await client.post("/api/note/abc", json={"content": "v2", "password": "p1"})
        assert ok.status_code == 200
        assert (await read(client, "abc")).json()["content"] == "v2"

    @pytest.mark.asyncio
    async def test_remove_lock(self, client, api):
        await client.post("/api/note/abc", json={"content": "v1"})
        await client.post("/api/note/abc/lock", json={"password": "p1", "lock_type": "read"})

        api.assert_error(
            await client.request("DELETE", "/api/note/abc/lock", json={"password": "bad"}),
            403,
        )
        removed = await client.request("DELETE", "/api/note/abc/lock", json={"password": "p1"})

        assert removed.json() == {"success": True}
        body = (await read(client, "abc")).json()
        assert body["is_locked"] is False
        assert body["content"] == "v1"

    @pytest.mark.asyncio
    async def test_lock_validation(self, client, api):
        await client.post("/api/note/abc", json={"content": "v1"})

        api.assert_error(await client.post("/api/note/abc/lock", json={"password": "p1"}), 400)
        api.assert_error(
            await client.post("/api/note/abc/lock", json={"password": "p1", "lock_type": "admin"}),
            400,
        )
        api.assert_error(
            await client.post("/api/note/none/lock", json={"password": "p1", "lock_type": "read"}),
            404,
            "RES_NOT_FOUND",
        )

    @pytest.mark.asyncio
    async def test_unlock_of_unlocked_note(self, client, api):
        await client.post("/api/note/abc", json={"content": "v1"})

        api.assert_error(await client.post("/api/note/abc/unlock", json={"password": "p"}), 400)


class TestGeneratePath:
    @pytest.mark.asyncio
    async def test_returns_unused_valid_path(self, client, path_policy):
        response = await client.get("/api/generate-path")

        assert response.status_code == 200
        path = response.json()["path"]
        assert path_policy.is_valid(path)
        assert (await client.get(f"/api/note/{path}")).json() == {"exists": False}


class TestRateLimit:
    @pytest.fixture(autouse=True)
    def _tight_limit(self, clock):
        rate_limit._rate_limiter = SlidingWindowRateLimiter(2, clock=clock)

    @pytest.mark.asyncio
    async def test_writes_over_limit_get_429(self, client, api):
        await client.post("/api/note/abc", json={"content": "1"})
        await client.post("/api/note/abc", json={"content": "2"})

        response = await client.post("/api/note/abc", json={"content": "3"})

        api.assert_error(response, 429, "RATE_LIMITED")
        assert response.headers["Retry-After"] == "61"

    @pytest.mark.asyncio
    async def test_reads_not_limited(self, client):
        for _ in range(5):
            assert (await client.get("/api/note/abc")).status_code == 200

    @pytest.mark.asyncio
    async def test_limit_is_per_client(self, client):
        await client.post("/api/note/abc", json={"content": "1"})
        await client.post("/api/note/abc", json={"content": "2"})

        response = await client.post(
            "/api/note/abc",
            json={"content": "3"},
            headers={"X-Forwarded-For": "198.51.100.9"},
        )

        assert response.status_code == 200
