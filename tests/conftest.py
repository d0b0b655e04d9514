"""
tests/conftest.py -- Shared test fixtures for Postboard.

This module provides:
  - make_context(): an isolated AppContext over a named shared-memory SQLite DB
  - ctx: function-scoped AppContext for store and service tests
  - client: TestClient with follow_redirects=False and a patched lifespan
  - sign_in(): point the client's session cookie at a given user

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each context gets a unique name so tests never share rows.

bcrypt_rounds=4 keeps hashing fast; production uses the configured cost.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

# Set DEBUG before any app import so a stray get_settings() call can
# auto-generate SECRET_KEY instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import User
from auth.tokens import create_access_token, hash_password
from core.config import Settings
from social.context import AppContext

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"


def make_context(tmp_path: Path) -> AppContext:
    settings = Settings(
        debug=True,
        secret_key=TEST_SECRET,
        bcrypt_rounds=4,
        uploads_dir=tmp_path / "uploads",
        reconcile_interval_seconds=0,
    )
    db_url = f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return AppContext.from_settings(settings, db_url=db_url)


def create_user(ctx: AppContext, name: str, email: str, password: str = "pw123") -> str:
    return ctx.users.create_user(User(name=name, email=email, hashed_password=hash_password(password, rounds=4)))


def token_for(ctx: AppContext, user_id: str, expire_seconds: int = 3600) -> str:
    return create_access_token(user_id, ctx.settings.secret_key, expire_seconds)


def sign_in(client: TestClient, ctx: AppContext, user_id: str) -> None:
    client.cookies.clear()
    client.cookies.set(ctx.settings.cookie_name, token_for(ctx, user_id))


def _patch_lifespan(ctx: AppContext):
    """Return a lifespan that wires the test context into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.ctx = ctx
        yield

    return test_lifespan


@pytest.fixture
def ctx(tmp_path: Path) -> Generator[AppContext, None, None]:
    context = make_context(tmp_path)
    yield context
    context.close()


@pytest.fixture
def client(ctx: AppContext) -> Generator[TestClient, None, None]:
    """TestClient over the real app with the test context injected.

    follow_redirects=False is essential: most routes answer with a redirect
    and the tests assert on its Location header.
    """
    app.router.lifespan_context = _patch_lifespan(ctx)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def alice(ctx: AppContext) -> str:
    return create_user(ctx, "Alice", "alice@x.com")


@pytest.fixture
def bob(ctx: AppContext) -> str:
    return create_user(ctx, "Bob", "bob@x.com")
