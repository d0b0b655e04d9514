"""
social/context.py -- The explicit application context handed to every handler.

AppContext bundles what used to be process-global state: settings (including
the token signing secret), the shared engine, and the two repositories built
on it. api/main.py builds one in the lifespan and stores it on app.state.ctx;
tests build their own over an in-memory database.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from auth.store import UserStore
from core.config import Settings
from core.db import make_engine
from social.store import PostStore


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    users: UserStore
    posts: PostStore

    @classmethod
    def from_settings(cls, settings: Settings, db_url: str | None = None) -> "AppContext":
        """Build a context whose stores share one engine on db_url (default: settings.database_url)."""
        engine = make_engine(db_url or settings.database_url)
        return cls(
            settings=settings,
            engine=engine,
            users=UserStore(engine, default_profile_picture=settings.default_profile_picture),
            posts=PostStore(engine),
        )

    def close(self) -> None:
        self.engine.dispose()
