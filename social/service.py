"""
social/service.py -- Request-independent logic behind every mutation and page.

Each function takes the AppContext explicitly and raises core.errors
exceptions on failure; web/routes.py turns results into redirects/pages and
api/main.py turns the exceptions into status codes. Nothing here knows about
HTTP, cookies, or templates.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.tokens import authenticate_user, hash_password
from core.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from social.context import AppContext
from social.models import Post, PostView, ProfileView
from social.uploads import store_image, validate_image

logger = logging.getLogger("postboard.social")

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")

_BAD_CREDENTIALS = "Invalid email or password."


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def is_valid_id(value: str | None) -> bool:
    return bool(value) and ID_PATTERN.match(value) is not None


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def register(ctx: AppContext, name: str, email: str, password: str) -> User:
    """Create an account and return it.

    Raises ValidationError if any field is blank and ConflictError if the
    email is already registered.
    """
    name, email = _clean(name), _clean(email).lower()
    if not name or not email or not isinstance(password, str) or not password:
        raise ValidationError("Name, email and password are required.")
    if ctx.users.get_by_email(email) is not None:
        raise ConflictError("An account with that email already exists.")

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password, rounds=ctx.settings.bcrypt_rounds),
    )
    try:
        user.id = ctx.users.create_user(user)
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email.
        raise ConflictError("An account with that email already exists.") from exc
    logger.info("Registered user %s", user.id)
    return ctx.users.get_by_id(user.id)


def login(ctx: AppContext, email: str, password: str) -> User:
    """Return the account for valid credentials.

    Unknown email and wrong password raise the same UnauthorizedError.
    """
    email = _clean(email)
    if not email or not isinstance(password, str) or not password:
        raise ValidationError("Email and password are required.")
    user = authenticate_user(ctx.users, email, password, rounds=ctx.settings.bcrypt_rounds)
    if user is None:
        logger.info("Failed login attempt")
        raise UnauthorizedError(_BAD_CREDENTIALS)
    return user


def require_user(ctx: AppContext, user_id: str) -> User:
    user = ctx.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


def create_post(ctx: AppContext, user_id: str, content: str) -> Post:
    """Publish a post for user_id. The author must be a stored user."""
    content = _clean(content)
    if not content:
        raise ValidationError("Content required.")
    require_user(ctx, user_id)
    post_id = ctx.posts.create_post(Post(author_id=user_id, content=content))
    return ctx.posts.get_post(post_id)


def _owned_post(ctx: AppContext, user_id: str, post_id: str) -> Post:
    post = ctx.posts.get_post(post_id) if is_valid_id(post_id) else None
    if post is None:
        raise NotFoundError("Post not found.")
    if post.author_id != user_id:
        logger.warning("User %s denied mutation of post %s", user_id, post_id)
        raise ForbiddenError("Only the author can change this post.")
    return post


def edit_post(ctx: AppContext, user_id: str, post_id: str, content: str) -> Post:
    """Replace the content of a post owned by user_id.

    Checks run in order: post exists (404), caller is author (403), content
    is non-blank (400).
    """
    _owned_post(ctx, user_id, post_id)
    content = _clean(content)
    if not content:
        raise ValidationError("Content required.")
    ctx.posts.update_content(post_id, content)
    return ctx.posts.get_post(post_id)


def delete_post(ctx: AppContext, user_id: str, post_id: str) -> None:
    _owned_post(ctx, user_id, post_id)
    ctx.posts.delete_post(post_id)
    logger.info("User %s deleted post %s", user_id, post_id)


def toggle_like(ctx: AppContext, user_id: str, post_id: str) -> bool:
    """Like or unlike a post. Returns True if the post is now liked by user_id."""
    if not is_valid_id(post_id):
        raise ValidationError("Invalid post id.")
    if ctx.posts.get_post(post_id) is None:
        raise NotFoundError("Post not found.")
    require_user(ctx, user_id)
    return ctx.posts.toggle_like(post_id, user_id)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def get_feed(ctx: AppContext, viewer_id: str | None = None) -> list[PostView]:
    return ctx.posts.list_feed(viewer_id)


def get_profile(
    ctx: AppContext,
    user_id: str,
    viewer_id: str | None = None,
    edit_post_id: str | None = None,
) -> ProfileView:
    """Load a user with their owned posts, newest first, authors resolved.

    edit_post_id is passed through untouched for the page to highlight.
    """
    user = ctx.users.get_by_id(user_id, with_posts=True) if is_valid_id(user_id) else None
    if user is None:
        raise NotFoundError("User not found.")
    return ProfileView(
        user=user,
        posts=ctx.posts.list_owned(user_id, viewer_id),
        edit_post_id=edit_post_id or None,
    )


def search_users(ctx: AppContext, query: str | None) -> list[User]:
    return ctx.users.search_by_name(query or "")


def upload_profile_picture(
    ctx: AppContext,
    user_id: str,
    filename: str | None,
    content_type: str | None,
    data: bytes,
) -> str:
    """Validate and store a new profile picture; return its public path."""
    validate_image(filename, content_type, data, ctx.settings.max_upload_bytes)
    path = store_image(ctx.settings.uploads_dir, filename, data)
    if not ctx.users.set_profile_picture(user_id, path):
        raise NotFoundError("User not found.")
    return path


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


def reconcile_owned_posts(ctx: AppContext) -> int:
    return ctx.posts.reconcile_owned_posts()
