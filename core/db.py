"""
core/db.py -- SQLAlchemy Core schema and engine factory.

One MetaData holds every table so the user store and the post store share a
single engine. The post store needs that: creating or deleting a post writes
the posts table and the owner's user_posts row in the same transaction.

Tables:
  users       -- credentials and profile (email UNIQUE, lower-cased by callers)
  posts       -- post body; pk gives a stable creation order, id is the opaque handle
  user_posts  -- the owned-post list; autoincrement id preserves insertion order
  post_likes  -- the like set; UNIQUE(post_id, user_id) forbids duplicate likes

Identifiers are uuid4 hex strings generated in Python (new_id()), never
exposed integer keys.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("profile_picture", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

posts = Table(
    "posts",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column("id", String(32), nullable=False, unique=True),
    Column("author_id", String(32), ForeignKey("users.id"), nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

user_posts = Table(
    "user_posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(32), nullable=False, index=True),
    Column("post_id", String(32), nullable=False, unique=True),
)

post_likes = Table(
    "post_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", String(32), nullable=False, index=True),
    Column("user_id", String(32), nullable=False),
    UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
)


def _on_sqlite_connect(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and register the casefold() SQL function.

    Set per-connection because SQLite PRAGMAs and user functions are not
    inherited by new connections from the pool. SQLite's own lower() only
    folds ASCII, so name search compares casefold() on both sides instead.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.create_function("casefold", 1, _casefold, deterministic=True)


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure every table exists."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _on_sqlite_connect)
    metadata.create_all(engine)
    return engine


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
