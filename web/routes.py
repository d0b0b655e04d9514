"""
web/routes.py -- Jinja2 template routes and form handlers for the Postboard UI.

These routes serve server-rendered HTML and perform every mutation. The
business rules live in social/service.py; this module parses request bodies,
runs the access gate, and turns results into redirects or pages. Failures
propagate as core.errors exceptions and are rendered by api/main.py.

Form handlers accept urlencoded, multipart, or JSON bodies (see _read_body).
Blocking work (bcrypt, database writes) runs in the threadpool so the event
loop stays free.

Routes:
  GET  /                         -- landing page
  GET  /register                 -- registration form
  POST /register                 -- create account, set cookie, redirect /feed
  GET  /login                    -- login form
  POST /login                    -- check credentials, set cookie, redirect /feed
  GET  /logout                   -- clear cookie, redirect /
  GET  /feed                     -- global post list (auth required)
  POST /post                     -- create post (auth required)
  GET  /posts/{post_id}/edit     -- redirect to /profile?editPostId=... (auth required)
  POST /posts/{post_id}/edit     -- submit edit (auth required, author only)
  POST /posts/{post_id}/delete   -- delete (auth required, author only)
  POST /posts/{post_id}/like     -- toggle like (auth required)
  GET  /profile                  -- own profile (auth required)
  GET  /profile/upload           -- picture upload form (auth required)
  POST /profile/upload           -- store picture (auth required)
  GET  /user/{user_id}           -- another user's profile (auth required)
  GET  /search                   -- user search by name (auth required)
  GET  /uploads/{filename}       -- serve a stored profile picture
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlparse

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from auth.dependencies import require_user, require_user_id, try_get_user_id
from auth.models import User
from auth.tokens import clear_auth_cookie, create_access_token, set_auth_cookie
from core.errors import ValidationError
from social import service
from social.context import AppContext
from social.uploads import IMAGE_SUFFIXES

logger = logging.getLogger("postboard.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# Only names store_image() can produce: 24 hex chars plus an accepted image suffix.
_UPLOAD_NAME = re.compile(r"^[0-9a-f]{24}(" + "|".join(re.escape(s) for s in IMAGE_SUFFIXES) + ")$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ctx(request: Request) -> AppContext:
    return request.app.state.ctx


async def _read_body(request: Request) -> dict[str, str]:
    """Return the request body fields as strings, whatever the encoding.

    JSON bodies must be objects; non-string JSON values are dropped so the
    service layer treats them as missing.
    """
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body is not valid JSON.") from exc
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")
        return {k: v for k, v in body.items() if isinstance(v, str)}
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _safe_path(request: Request, url: Optional[str], fallback: str = "/feed") -> str:
    """Reduce a same-origin Referer to a local path, or return fallback.

    Only the path and query survive. A Referer naming another host, a path
    that is not server-local ("/" but not "//"), or any backslash (browsers
    read "/\\host" as "//host") falls back, so a crafted Referer cannot bounce
    the user off-site.
    """
    if not url:
        return fallback
    parsed = urlparse(url)
    if parsed.netloc and parsed.netloc != request.url.netloc:
        return fallback
    path = parsed.path
    if not path.startswith("/") or path.startswith("//") or "\\" in url:
        return fallback
    return f"{path}?{parsed.query}" if parsed.query else path


def _back(request: Request) -> RedirectResponse:
    return RedirectResponse(_safe_path(request, request.headers.get("referer")), status_code=302)


def _signed_in(request: Request, user: User) -> RedirectResponse:
    """Redirect to the feed carrying a fresh session cookie for user."""
    settings = _ctx(request).settings
    token = create_access_token(user.id, settings.secret_key, settings.token_expire_seconds)
    resp = RedirectResponse("/feed", status_code=302)
    set_auth_cookie(resp, token, settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request, "index.html", {"signed_in": try_get_user_id(request) is not None}
    )


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    if try_get_user_id(request) is not None:
        return RedirectResponse("/feed", status_code=302)
    return templates.TemplateResponse(request, "register.html", {})


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    if try_get_user_id(request) is not None:
        return RedirectResponse("/feed", status_code=302)
    return templates.TemplateResponse(request, "login.html", {})


# ---------------------------------------------------------------------------
# Session routes
# ---------------------------------------------------------------------------


@router.post("/register")
async def register(request: Request) -> RedirectResponse:
    body = await _read_body(request)
    user = await run_in_threadpool(
        service.register, _ctx(request), body.get("name", ""), body.get("email", ""), body.get("password", "")
    )
    return _signed_in(request, user)


@router.post("/login")
async def login(request: Request) -> RedirectResponse:
    body = await _read_body(request)
    user = await run_in_threadpool(service.login, _ctx(request), body.get("email", ""), body.get("password", ""))
    return _signed_in(request, user)


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = RedirectResponse("/", status_code=302)
    clear_auth_cookie(resp, _ctx(request).settings)
    return resp


# ---------------------------------------------------------------------------
# Feed and posts
# ---------------------------------------------------------------------------


@router.get("/feed", response_class=HTMLResponse)
def feed(request: Request, user: User = Depends(require_user)) -> HTMLResponse:
    posts = service.get_feed(_ctx(request), user.id)
    return templates.TemplateResponse(request, "feed.html", {"current_user": user, "posts": posts})


@router.post("/post")
async def create_post(request: Request, user: User = Depends(require_user)) -> RedirectResponse:
    body = await _read_body(request)
    await run_in_threadpool(service.create_post, _ctx(request), user.id, body.get("content", ""))
    return RedirectResponse("/feed", status_code=302)


@router.get("/posts/{post_id}/edit")
def begin_edit(post_id: str, user_id: str = Depends(require_user_id)) -> RedirectResponse:
    """Hand the post id to the profile page; ownership is checked on submit."""
    return RedirectResponse(f"/profile?editPostId={quote(post_id, safe='')}", status_code=302)


@router.post("/posts/{post_id}/edit")
async def submit_edit(request: Request, post_id: str, user: User = Depends(require_user)) -> RedirectResponse:
    body = await _read_body(request)
    await run_in_threadpool(service.edit_post, _ctx(request), user.id, post_id, body.get("content", ""))
    return RedirectResponse("/profile", status_code=302)


@router.post("/posts/{post_id}/delete")
def delete_post(request: Request, post_id: str, user: User = Depends(require_user)) -> RedirectResponse:
    service.delete_post(_ctx(request), user.id, post_id)
    return _back(request)


@router.post("/posts/{post_id}/like")
def like_post(request: Request, post_id: str, user: User = Depends(require_user)) -> RedirectResponse:
    service.toggle_like(_ctx(request), user.id, post_id)
    return _back(request)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@router.get("/profile", response_class=HTMLResponse)
def my_profile(
    request: Request,
    edit_post_id: Optional[str] = Query(default=None, alias="editPostId"),
    user: User = Depends(require_user),
) -> HTMLResponse:
    profile = service.get_profile(_ctx(request), user.id, viewer_id=user.id, edit_post_id=edit_post_id)
    return templates.TemplateResponse(
        request,
        "profile.html",
        {"current_user": profile.user, "profile": profile, "is_own": True},
    )


@router.get("/profile/upload", response_class=HTMLResponse)
def upload_form(request: Request, user: User = Depends(require_user)) -> HTMLResponse:
    settings = _ctx(request).settings
    return templates.TemplateResponse(
        request,
        "upload.html",
        {"current_user": user, "max_mb": settings.max_upload_bytes // (1024 * 1024)},
    )


@router.post("/profile/upload")
async def upload_picture(
    request: Request,
    profile: Optional[UploadFile] = File(default=None),
    user: User = Depends(require_user),
) -> RedirectResponse:
    ctx = _ctx(request)
    data = b""
    filename = content_type = None
    if profile is not None:
        # One byte past the limit is enough to know the upload is too large.
        data = await profile.read(ctx.settings.max_upload_bytes + 1)
        filename, content_type = profile.filename, profile.content_type
    await run_in_threadpool(service.upload_profile_picture, ctx, user.id, filename, content_type, data)
    return RedirectResponse("/profile", status_code=302)


@router.get("/user/{user_id}", response_class=HTMLResponse)
def view_profile(request: Request, user_id: str, user: User = Depends(require_user)) -> HTMLResponse:
    profile = service.get_profile(_ctx(request), user_id, viewer_id=user.id)
    return templates.TemplateResponse(
        request,
        "profile.html",
        {"current_user": user, "profile": profile, "is_own": profile.user.id == user.id},
    )


@router.get("/uploads/{filename}")
def uploaded_file(request: Request, filename: str) -> FileResponse:
    """Serve a stored profile picture. Only names store_image() can produce are accepted.

    The media type comes from the stored suffix, which store_image() only
    writes for accepted image types, and nosniff stops browsers second-guessing it.
    """
    match = _UPLOAD_NAME.match(filename)
    if not match:
        raise HTTPException(status_code=404, detail="Not found.")
    path = _ctx(request).settings.uploads_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found.")
    return FileResponse(
        path,
        media_type=IMAGE_SUFFIXES[match.group(1)],
        headers={"X-Content-Type-Options": "nosniff"},
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.get("/search", response_class=HTMLResponse)
def search(request: Request, q: str = "", user: User = Depends(require_user)) -> HTMLResponse:
    """Case-insensitive name search. Signed-in users only, so the page always has a current user."""
    results = service.search_users(_ctx(request), q)
    return templates.TemplateResponse(
        request,
        "search.html",
        {"current_user": user, "query": q, "results": results},
    )
