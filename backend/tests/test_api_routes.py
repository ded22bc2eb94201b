"""
SnipShare Backend: JSON API Endpoint Tests
============================================

What:  End-to-end tests of /api through httpx's ASGITransport, against a
       fresh in-memory database per test.

What we test:
    ✅ register 201 / 400 (validation, duplicate); bcrypt cost from the app Settings
    ✅ login 200 with session cookie / 401 without leaking the reason
    ✅ /me reflects login and logout
    ✅ snippet create (anonymous and owned), get, update, delete, list, search
    ✅ 404 for unknown ids, 400 with field errors for bad bodies
    ✅ StoreError becomes a generic 500
    ✅ /health, X-Request-ID and the per-IP rate limit
    ✅ Access log lines name the route template and never the query string
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from snipshare.exceptions import StoreError
from snipshare.main import create_app
from snipshare.models.user import User
from snipshare.services.snippet_service import SnippetService

SNIPPET = {"title": "Hello", "code": "print(1)", "description": "First!", "language": "python"}


async def register_and_login(client, username="alice", password="secret1"):
    response = await client.post(
        "/api/register",
        json={"username": username, "password": password, "confirmPassword": password},
    )
    assert response.status_code == 201
    response = await client.post("/api/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return response.json()["user"]


class TestAccountsApi:

    @pytest.mark.asyncio
    async def test_register(self, test_client):
        response = await test_client.post(
            "/api/register",
            json={"username": "alice", "password": "secret1", "confirmPassword": "secret1"},
        )
        assert response.status_code == 201
        assert response.json() == {"message": "Registration successful! Please log in."}

    @pytest.mark.asyncio
    async def test_register_validation_errors(self, test_client):
        response = await test_client.post(
            "/api/register",
            json={"username": "", "password": "abc", "confirmPassword": "abd"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert {e["field"] for e in body["errors"]} == {"username", "password", "confirmPassword"}
        assert "abc" not in response.text

    @pytest.mark.asyncio
    async def test_register_duplicate(self, test_client):
        payload = {"username": "alice", "password": "secret1", "confirmPassword": "secret1"}
        assert (await test_client.post("/api/register", json=payload)).status_code == 201

        response = await test_client.post("/api/register", json=payload)
        assert response.status_code == 400
        assert response.json()["error"] == "conflict"
        assert response.json()["message"] == "Username already exists"

    @pytest.mark.asyncio
    async def test_bcrypt_cost_follows_app_settings(self, test_settings):
        custom = create_app(test_settings.model_copy(update={"bcrypt_rounds": 6}))
        await custom.state.database.create_schema()
        transport = ASGITransport(app=custom)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/register",
                json={"username": "alice", "password": "secret1", "confirmPassword": "secret1"},
            )
            login = await client.post("/api/login", json={"username": "alice", "password": "secret1"})

        async with custom.state.database.session_factory() as session:
            stored = (await session.execute(select(User.password_hash))).scalar_one()

        await custom.state.quote_service.aclose()
        await custom.state.database.dispose()

        assert response.status_code == 201
        assert login.status_code == 200
        assert stored.startswith("$2b$06$")

    @pytest.mark.asyncio
    async def test_login_sets_http_only_session_cookie(self, test_client, test_settings):
        await test_client.post(
            "/api/register",
            json={"username": "alice", "password": "secret1", "confirmPassword": "secret1"},
        )
        response = await test_client.post(
            "/api/login", json={"username": "alice", "password": "secret1"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert response.json()["user"]["username"] == "alice"
        assert "password_hash" not in response.json()["user"]

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{test_settings.session_cookie_name}=")
        assert "httponly" in set_cookie.lower()

    @pytest.mark.asyncio
    async def test_login_failures_look_identical(self, test_client):
        await test_client.post(
            "/api/register",
            json={"username": "alice", "password": "secret1", "confirmPassword": "secret1"},
        )
        wrong_password = await test_client.post(
            "/api/login", json={"username": "alice", "password": "wrong"}
        )
        unknown_user = await test_client.post(
            "/api/login", json={"username": "bob", "password": "x"}
        )

        for response in (wrong_password, unknown_user):
            assert response.status_code == 401
            assert response.json()["error"] == "invalid_credentials"
            assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, test_client):
        response = await test_client.post("/api/login", json={"username": "alice"})
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["password"]

    @pytest.mark.asyncio
    async def test_me_login_logout_cycle(self, test_client):
        assert (await test_client.get("/api/me")).status_code == 401

        user = await register_and_login(test_client)
        me = await test_client.get("/api/me")
        assert me.status_code == 200
        assert me.json() == user

        logout = await test_client.post("/api/logout")
        assert logout.status_code == 200
        assert logout.json() == {"message": "You have been logged out."}
        assert (await test_client.get("/api/me")).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_when_not_logged_in(self, test_client):
        response = await test_client.post("/api/logout")
        assert response.status_code == 200


class TestSnippetsApi:

    @pytest.mark.asyncio
    async def test_anonymous_submit_and_get(self, test_client):
        response = await test_client.post("/api/submit-snippet", json=SNIPPET)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Snippet created successfully!"
        snippet_id = body["snippetId"]

        response = await test_client.get(f"/api/snippet/{snippet_id}")
        assert response.status_code == 200
        snippet = response.json()["snippet"]
        assert snippet["id"] == snippet_id
        assert snippet["user_id"] is None
        assert snippet["username"] is None
        for key, value in SNIPPET.items():
            assert snippet[key] == value

    @pytest.mark.asyncio
    async def test_logged_in_submit_is_owned(self, test_client):
        user = await register_and_login(test_client)

        snippet_id = (await test_client.post("/api/submit-snippet", json=SNIPPET)).json()["snippetId"]
        snippet = (await test_client.get(f"/api/snippet/{snippet_id}")).json()["snippet"]
        assert snippet["user_id"] == user["id"]
        assert snippet["username"] == "alice"

    @pytest.mark.asyncio
    async def test_submit_missing_fields(self, test_client):
        response = await test_client.post(
            "/api/submit-snippet", json={"title": " ", "description": "no code"}
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["title", "code", "language"]
        assert (await test_client.get("/api/snippets")).json() == {"snippets": []}

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, test_client):
        response = await test_client.post(
            "/api/submit-snippet",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["errors"]

    @pytest.mark.asyncio
    async def test_get_unknown(self, test_client):
        response = await test_client.get("/api/snippet/999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_non_integer_id_is_400(self, test_client):
        response = await test_client.get("/api/snippet/abc")
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "snippet_id"

    @pytest.mark.asyncio
    async def test_update(self, test_client):
        snippet_id = (await test_client.post("/api/submit-snippet", json=SNIPPET)).json()["snippetId"]
        before = (await test_client.get(f"/api/snippet/{snippet_id}")).json()["snippet"]

        response = await test_client.put(
            f"/api/snippet/{snippet_id}",
            json={"title": "Hello v2", "code": "print(2)", "language": "python"},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Snippet updated successfully!"}

        after = (await test_client.get(f"/api/snippet/{snippet_id}")).json()["snippet"]
        assert after["title"] == "Hello v2"
        assert after["description"] is None
        assert after["created_at"] == before["created_at"]

    @pytest.mark.asyncio
    async def test_update_unknown_and_invalid(self, test_client):
        response = await test_client.put("/api/snippet/77", json=SNIPPET)
        assert response.status_code == 404

        snippet_id = (await test_client.post("/api/submit-snippet", json=SNIPPET)).json()["snippetId"]
        response = await test_client.put(f"/api/snippet/{snippet_id}", json={"title": "x"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, test_client):
        snippet_id = (await test_client.post("/api/submit-snippet", json=SNIPPET)).json()["snippetId"]

        response = await test_client.delete(f"/api/snippet/{snippet_id}")
        assert response.status_code == 200
        assert (await test_client.get(f"/api/snippet/{snippet_id}")).status_code == 404
        assert (await test_client.delete(f"/api/snippet/{snippet_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_search(self, test_client):
        for title in ("Quick sort", "QUICK select", "Merge sort"):
            await test_client.post("/api/submit-snippet", json={**SNIPPET, "title": title})

        response = await test_client.post("/api/search-results", json={"query": "quick"})
        assert response.status_code == 200
        assert sorted(s["title"] for s in response.json()["snippets"]) == ["QUICK select", "Quick sort"]

        response = await test_client.post("/api/search-results", json={"query": "heap"})
        assert response.status_code == 200
        assert response.json() == {"snippets": []}

    @pytest.mark.asyncio
    async def test_search_requires_query(self, test_client):
        response = await test_client.post("/api/search-results", json={"query": ""})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "query"

    @pytest.mark.asyncio
    async def test_list(self, test_client):
        await test_client.post("/api/submit-snippet", json={**SNIPPET, "title": "one"})
        await test_client.post("/api/submit-snippet", json={**SNIPPET, "title": "two"})

        response = await test_client.get("/api/snippets")
        assert response.status_code == 200
        assert {s["title"] for s in response.json()["snippets"]} == {"one", "two"}

    @pytest.mark.asyncio
    async def test_store_error_is_generic_500(self, test_client):
        with patch.object(
            SnippetService,
            "list_snippets",
            AsyncMock(side_effect=StoreError(context={"sql": "SELECT secret"})),
        ):
            response = await test_client.get("/api/snippets")

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert "secret" not in response.text


class TestHealthAndPlumbing:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["quote_api"] == "available"
        assert body["version"] == "1.0.0"

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        response = await test_client.get("/api/snippets")
        assert len(response.headers["X-Request-ID"]) == 8

        echoed = await test_client.get("/api/snippets", headers={"X-Request-ID": "trace-123"})
        assert echoed.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_unknown_api_route_is_json_404(self, test_client):
        response = await test_client.get("/api/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_rate_limit_returns_json_429(self, test_settings):
        limited = create_app(test_settings.model_copy(update={"rate_limit_requests": 10}))
        await limited.state.database.create_schema()
        transport = ASGITransport(app=limited)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for _ in range(10):
                assert (await client.get("/api/snippets")).status_code == 200

            response = await client.get("/api/snippets")
            # /health is never limited.
            health = await client.get("/health")

        await limited.state.quote_service.aclose()
        await limited.state.database.dispose()

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        assert int(response.headers["Retry-After"]) > 0
        assert health.status_code == 200

    @pytest.mark.asyncio
    async def test_access_log_uses_route_template(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="snipshare.access")

        await test_client.get("/api/snippet/999")
        await test_client.get("/api/snippets?secret=abc")
        await test_client.get("/health")

        records = [r for r in caplog.records if r.name == "snipshare.access"]
        assert [(r.route, r.status, r.levelno) for r in records] == [
            ("/api/snippet/{snippet_id}", 404, logging.WARNING),
            ("/api/snippets", 200, logging.INFO),
        ]
        assert records[0].has_session is False
        assert all("secret" not in r.getMessage() for r in records)
