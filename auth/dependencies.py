"""
auth/dependencies.py -- The access gate: FastAPI Depends() helpers.

The session token travels in one place only: the cookie named
Settings.cookie_name. The gate verifies it against the signing secret held by
the AppContext on app.state.ctx.

try_get_user_id() is the soft variant (returns None on failure).
require_user_id() raises AuthenticationRequired and performs no store lookup.
require_user() additionally resolves the full record -- exactly one lookup.

AuthenticationRequired is rendered by the handler in api/main.py: browsers get
a 302 to /login, API callers a 401. When the cookie was present but invalid
(bad signature, expired, malformed, or naming a user that no longer exists)
the response also clears it.

Layer rule: no imports from web/ or social/ at runtime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from auth.models import User
from auth.tokens import decode_access_token

if TYPE_CHECKING:
    from social.context import AppContext


class AuthenticationRequired(Exception):
    """Raised by the gate; clear_cookie says whether a bad cookie must be dropped."""

    def __init__(self, clear_cookie: bool = False) -> None:
        super().__init__("Authentication required.")
        self.clear_cookie = clear_cookie


def wants_html(request: Request) -> bool:
    """Return True if the caller should get browser-style responses.

    Mirrors content negotiation for "html": an explicit text/html, a
    wildcard, or no Accept header at all counts as a browser. A caller that
    only asks for JSON (or another concrete type) is treated as an API client.
    """
    accept = request.headers.get("accept", "").lower()
    if not accept.strip():
        return True
    return "text/html" in accept or "*/*" in accept


def _ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def try_get_user_id(request: Request) -> str | None:
    """Return the user id carried by a valid session cookie, or None. Never raises."""
    ctx = _ctx(request)
    token = request.cookies.get(ctx.settings.cookie_name)
    if not token:
        return None
    return decode_access_token(token, ctx.settings.secret_key)


def require_user_id(request: Request) -> str:
    """Require a valid session. Returns the user id without touching the store.

    Use as a FastAPI dependency:
        @router.get("/posts/{post_id}/edit")
        def route(post_id: str, user_id: str = Depends(require_user_id)): ...
    """
    ctx = _ctx(request)
    token = request.cookies.get(ctx.settings.cookie_name)
    if not token:
        raise AuthenticationRequired(clear_cookie=False)
    user_id = decode_access_token(token, ctx.settings.secret_key)
    if user_id is None:
        raise AuthenticationRequired(clear_cookie=True)
    request.state.user_id = user_id
    return user_id


def require_user(request: Request) -> User:
    """Require a valid session and resolve it to the stored User.

    A correctly signed token for a deleted account is treated like any other
    invalid token.
    """
    user_id = require_user_id(request)
    user = _ctx(request).users.get_by_id(user_id)
    if user is None:
        raise AuthenticationRequired(clear_cookie=True)
    request.state.user = user
    return user
