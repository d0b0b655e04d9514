"""
social/store.py -- SQLAlchemy Core persistence layer for posts and likes.

Pattern: Repository + Data Mapper (same as auth/store.py).
PostStore is the repository; _row_to_post / _row_to_view are the mappers.

Consistency:
  The owned-post list (user_posts) mirrors posts.author_id. create_post()
  and delete_post() write both tables inside one engine.begin() block, so a
  failure between the two statements rolls the whole change back.
  reconcile_owned_posts() repairs databases written before that guarantee
  existed.

  The like set is post_likes with UNIQUE(post_id, user_id). toggle_like()
  removes first and only inserts when nothing was removed; if a concurrent
  toggle wins the insert race the constraint rejects ours and the post simply
  stays liked.

Reads that feed pages go through _resolve(), an explicit join of posts to
their authors that returns PostView objects -- nothing is resolved lazily.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from core.db import new_id, now_iso, post_likes, posts, user_posts, users
from social.models import AuthorView, Post, PostView

logger = logging.getLogger("postboard.social")

_FEED_COLUMNS = (
    posts.c.id,
    posts.c.content,
    posts.c.created_at,
    posts.c.updated_at,
    posts.c.author_id,
    users.c.name.label("author_name"),
    users.c.profile_picture.label("author_picture"),
)


class PostStore:
    """Repository for Post entities, the owned-post list, and the like set.

    Usage:
        store = PostStore(engine)
        post_id = store.create_post(Post(author_id=uid, content="hello"))
        liked = store.toggle_like(post_id, other_uid)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> str:
        """Insert a post and append it to the author's owned-post list.

        Both rows are written in one transaction. Returns the new post id.
        """
        post_id = new_id()
        stamp = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                posts.insert().values(
                    id=post_id,
                    author_id=post.author_id,
                    content=post.content,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.execute(user_posts.insert().values(user_id=post.author_id, post_id=post_id))
        return post_id

    def update_content(self, post_id: str, content: str) -> bool:
        """Replace a post's content and refresh updated_at.

        Returns True if a row was updated, False if post_id was not found.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                posts.update().where(posts.c.id == post_id).values(content=content, updated_at=now_iso())
            )
        return result.rowcount > 0

    def delete_post(self, post_id: str) -> bool:
        """Delete a post, its likes, and its owned-post entry in one transaction.

        Returns True if the post existed. Ownership is the caller's check.
        """
        with self.engine.begin() as conn:
            conn.execute(post_likes.delete().where(post_likes.c.post_id == post_id))
            conn.execute(user_posts.delete().where(user_posts.c.post_id == post_id))
            result = conn.execute(posts.delete().where(posts.c.id == post_id))
        return result.rowcount > 0

    def toggle_like(self, post_id: str, user_id: str) -> bool:
        """Flip user_id's membership in the post's like set.

        Returns True if the post is liked by user_id afterwards, False if the
        like was removed.
        """
        try:
            with self.engine.begin() as conn:
                removed = conn.execute(
                    post_likes.delete().where(and_(post_likes.c.post_id == post_id, post_likes.c.user_id == user_id))
                ).rowcount
                if removed:
                    return False
                conn.execute(post_likes.insert().values(post_id=post_id, user_id=user_id))
                return True
        except IntegrityError:
            logger.info("Concurrent like on post %s by %s; keeping existing like", post_id, user_id)
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_post(self, post_id: str) -> Post | None:
        """Load one post with its like set. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(posts.select().where(posts.c.id == post_id)).fetchone()
            if row is None:
                return None
            likes = set(conn.execute(select(post_likes.c.user_id).where(post_likes.c.post_id == post_id)).scalars())
        return _row_to_post(row, likes)

    def list_feed(self, viewer_id: str | None = None) -> list[PostView]:
        """Every post, newest first, with authors resolved."""
        stmt = select(*_FEED_COLUMNS).select_from(posts.join(users, users.c.id == posts.c.author_id))
        with self.engine.connect() as conn:
            return self._resolve(conn, stmt, viewer_id)

    def list_owned(self, user_id: str, viewer_id: str | None = None) -> list[PostView]:
        """The posts on user_id's owned-post list, newest first, authors resolved."""
        stmt = (
            select(*_FEED_COLUMNS)
            .select_from(
                user_posts.join(posts, posts.c.id == user_posts.c.post_id).join(users, users.c.id == posts.c.author_id)
            )
            .where(user_posts.c.user_id == user_id)
        )
        with self.engine.connect() as conn:
            return self._resolve(conn, stmt, viewer_id)

    def _resolve(self, conn: Connection, stmt, viewer_id: str | None) -> list[PostView]:
        rows = conn.execute(stmt.order_by(posts.c.created_at.desc(), posts.c.pk.desc())).fetchall()
        if not rows:
            return []
        likes: dict[str, set[str]] = {}
        like_rows = conn.execute(
            select(post_likes.c.post_id, post_likes.c.user_id).where(post_likes.c.post_id.in_([r.id for r in rows]))
        )
        for post_id, liker in like_rows:
            likes.setdefault(post_id, set()).add(liker)
        return [_row_to_view(r, likes.get(r.id, set()), viewer_id) for r in rows]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def reconcile_owned_posts(self) -> int:
        """Bring user_posts back in line with posts.author_id.

        Adds entries for posts missing from their author's list and
        drops entries whose post no longer exists or belongs to someone else.
        A post whose author is not a stored user is never filed.
        Returns the number of rows repaired.
        """
        with self.engine.begin() as conn:
            stale = list(
                conn.execute(
                    select(user_posts.c.id)
                    .select_from(user_posts.outerjoin(posts, posts.c.id == user_posts.c.post_id))
                    .where((posts.c.pk.is_(None)) | (posts.c.author_id != user_posts.c.user_id))
                ).scalars()
            )
            if stale:
                conn.execute(user_posts.delete().where(user_posts.c.id.in_(stale)))
            # Runs after the stale delete so misfiled entries are re-added
            # under the right author.
            missing = conn.execute(
                select(posts.c.id, posts.c.author_id)
                .select_from(
                    posts.join(users, users.c.id == posts.c.author_id).outerjoin(
                        user_posts, user_posts.c.post_id == posts.c.id
                    )
                )
                .where(user_posts.c.id.is_(None))
                .order_by(posts.c.pk)
            ).fetchall()
            for post_id, author_id in missing:
                conn.execute(user_posts.insert().values(user_id=author_id, post_id=post_id))
        repaired = len(missing) + len(stale)
        if repaired:
            logger.warning("Owned-post lists repaired (%d added, %d removed)", len(missing), len(stale))
        return repaired


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row, likes: set[str]) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        content=row.content,
        likes=likes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_view(row, likes: set[str], viewer_id: str | None) -> PostView:
    return PostView(
        id=row.id,
        content=row.content,
        author=AuthorView(id=row.author_id, name=row.author_name, profile_picture=row.author_picture),
        like_count=len(likes),
        liked_by_viewer=viewer_id is not None and viewer_id in likes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
