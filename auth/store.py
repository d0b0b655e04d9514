"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as social/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Email uniqueness is enforced by the UNIQUE constraint on users.email;
  create_user() lets IntegrityError propagate so the caller can report a
  conflict even when two registrations race past the pre-check.

The engine is shared with PostStore (see core/db.py) and owned by the
AppContext, which disposes it once on shutdown.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.db import new_id, now_iso, user_posts, users

_LIKE_ESCAPE = "\\"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(make_engine("sqlite:///:memory:"))
        uid = store.create_user(User(name="Alice", email="alice@x.com", hashed_password=hash_password("pw")))
        user = store.get_by_email("alice@x.com")
    """

    def __init__(self, engine: Engine, default_profile_picture: str = "") -> None:
        self.engine = engine
        self.default_profile_picture = default_profile_picture

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its assigned identifier.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        user_id = new_id()
        stamp = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                users.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    profile_picture=user.profile_picture or self.default_profile_picture,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return user_id

    def set_profile_picture(self, user_id: str, path: str) -> bool:
        """Point the user's profile picture at a new public path.

        Returns True if a row was updated, False if user_id was not found.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update().where(users.c.id == user_id).values(profile_picture=path, updated_at=now_iso())
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str, with_posts: bool = False) -> User | None:
        """Look up a user by identifier. Returns None if not found.

        with_posts=True also loads the owned-post list in creation order.
        """
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
            if row is None:
                return None
            user = _row_to_user(row)
            if with_posts:
                user.post_ids = list(
                    conn.execute(
                        select(user_posts.c.post_id).where(user_posts.c.user_id == user_id).order_by(user_posts.c.id)
                    ).scalars()
                )
        return user

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email. The argument is normalized before matching."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def search_by_name(self, query: str) -> list[User]:
        """Case-insensitive substring match on display name, ordered by name.

        The name goes through the casefold() SQL function core/db.py registers
        on every SQLite connection and the term through str.casefold(), so
        non-ASCII names match regardless of case.

        A blank query returns every user. LIKE wildcards in the query are
        matched literally.
        """
        stmt = users.select().order_by(users.c.name, users.c.created_at)
        term = query.strip()
        if term:
            pattern = f"%{_escape_like(term.casefold())}%"
            stmt = stmt.where(func.casefold(users.c.name).like(pattern, escape=_LIKE_ESCAPE))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        profile_picture=row.profile_picture,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
