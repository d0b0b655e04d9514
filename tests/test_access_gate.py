"""
tests/test_access_gate.py -- Integration tests for the session access gate.

These tests exercise auth/dependencies.py end-to-end through the real ASGI
stack using the client fixture (follow_redirects=False), asserting on status
codes, Location headers, and Set-Cookie headers directly.

Coverage:
  - No cookie: browsers -> 302 /login, API callers -> 401 JSON, cookie untouched
  - Bad cookie (tampered, expired, deleted user): same branching, cookie cleared
  - Deleted user: mutations and the own-profile page are gated, nothing written
  - Valid cookie: request passes through
  - Search requires a session
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from core.db import posts
from social.models import Post
from tests.conftest import sign_in, token_for

JSON = {"Accept": "application/json"}
HTML = {"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"}

PROTECTED_GETS = ["/feed", "/profile", "/profile/upload", "/search", "/posts/" + "0" * 32 + "/edit"]


def _cookie_cleared(resp, name: str = "token") -> bool:
    headers = resp.headers.get_list("set-cookie")
    return any(h.startswith(f"{name}=") and ("max-age=0" in h.lower() or "expires=" in h.lower()) for h in headers)


class TestMissingSession:
    @pytest.mark.parametrize("path", PROTECTED_GETS)
    def test_browser_redirects_to_login(self, client: TestClient, path: str) -> None:
        resp = client.get(path, headers=HTML)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert not _cookie_cleared(resp)

    def test_default_accept_counts_as_browser(self, client: TestClient) -> None:
        resp = client.get("/feed")
        assert resp.status_code == 302

    @pytest.mark.parametrize("path", PROTECTED_GETS)
    def test_api_caller_gets_401(self, client: TestClient, path: str) -> None:
        resp = client.get(path, headers=JSON)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_mutations_are_gated(self, client: TestClient) -> None:
        resp = client.post("/post", data={"content": "hello"}, headers=JSON)
        assert resp.status_code == 401
        resp = client.post("/posts/" + "0" * 32 + "/like", headers=HTML)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"


class TestInvalidSession:
    def test_tampered_token_clears_cookie_and_redirects(self, client: TestClient, ctx, alice) -> None:
        token = token_for(ctx, alice)
        client.cookies.set("token", token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB"))
        resp = client.get("/feed", headers=HTML)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert _cookie_cleared(resp)

    def test_expired_token_gets_401_for_api_and_clears_cookie(self, client: TestClient, ctx, alice) -> None:
        client.cookies.set("token", token_for(ctx, alice, expire_seconds=-5))
        resp = client.get("/feed", headers=JSON)
        assert resp.status_code == 401
        assert _cookie_cleared(resp)

    def test_token_for_deleted_user_is_invalid(self, client: TestClient, ctx) -> None:
        client.cookies.set("token", token_for(ctx, "0" * 32))
        resp = client.get("/feed", headers=HTML)
        assert resp.status_code == 302
        assert _cookie_cleared(resp)

    def test_token_for_deleted_user_cannot_post(self, client: TestClient, ctx) -> None:
        client.cookies.set("token", token_for(ctx, "0" * 32))
        resp = client.post("/post", data={"content": "ghost"}, headers=HTML)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert _cookie_cleared(resp)
        with ctx.engine.connect() as conn:
            assert conn.execute(select(posts.c.id)).fetchall() == []

    def test_token_for_deleted_user_cannot_like(self, client: TestClient, ctx, alice) -> None:
        post_id = ctx.posts.create_post(Post(author_id=alice, content="hello"))
        client.cookies.set("token", token_for(ctx, "0" * 32))
        resp = client.post(f"/posts/{post_id}/like", headers=JSON)
        assert resp.status_code == 401
        assert _cookie_cleared(resp)
        assert ctx.posts.get_post(post_id).likes == set()

    def test_token_for_deleted_user_on_own_profile(self, client: TestClient, ctx) -> None:
        client.cookies.set("token", token_for(ctx, "0" * 32))
        resp = client.get("/profile", headers=HTML)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert _cookie_cleared(resp)


class TestValidSession:
    def test_feed_renders(self, client: TestClient, ctx, alice) -> None:
        sign_in(client, ctx, alice)
        resp = client.get("/feed", headers=HTML)
        assert resp.status_code == 200
        assert "Alice" in resp.text

    def test_me_endpoint(self, client: TestClient, ctx, alice) -> None:
        sign_in(client, ctx, alice)
        resp = client.get("/api/v1/auth/me", headers=JSON)
        assert resp.status_code == 200
        data = resp.json()
        assert data["user_id"] == alice
        assert data["email"] == "alice@x.com"
        assert "hashed_password" not in data

    def test_search_renders_current_user(self, client: TestClient, ctx, alice, bob) -> None:
        sign_in(client, ctx, alice)
        resp = client.get("/search", params={"q": "bo"}, headers=HTML)
        assert resp.status_code == 200
        assert f"/user/{bob}" in resp.text
        assert f"/user/{alice}" not in resp.text
