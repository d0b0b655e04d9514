"""
social/models.py -- Domain dataclasses for posts and the resolved read views.

Post is the stored shape. AuthorView / PostView / ProfileView are what the
store's join step returns to pages: every author reference is already
resolved, so templates never trigger further lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from auth.models import User


@dataclass
class Post:
    author_id: str
    content: str
    id: str | None = None
    likes: set[str] = field(default_factory=set)
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class AuthorView:
    id: str
    name: str
    profile_picture: str


@dataclass
class PostView:
    """A post joined with its author, as shown in the feed and on profiles.

    liked_by_viewer is relative to the user the view was built for.
    """

    id: str
    content: str
    author: AuthorView
    like_count: int
    liked_by_viewer: bool
    created_at: str
    updated_at: str

    @property
    def edited(self) -> bool:
        return self.updated_at != self.created_at


@dataclass
class ProfileView:
    user: User
    posts: list[PostView]
    edit_post_id: str | None = None
