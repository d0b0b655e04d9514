"""
auth/models.py -- Domain dataclass for the user account.

Pattern: Data class (pure data container, zero logic). Mirrors social/models.py
-- dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/, web/, or social/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered account.

    email is the login key and is always stored lower-cased. post_ids is the
    owned-post list in creation order; it is only populated by UserStore
    reads that ask for it (get_by_id(..., with_posts=True)).

    id is None before the record is written to the database.
    """

    name: str
    email: str
    hashed_password: str
    id: str | None = None
    profile_picture: str = ""
    post_ids: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
