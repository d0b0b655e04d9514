"""
API request and response models for Postboard's JSON surface.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
social/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import User

# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error body returned to API callers for every failure."""

    error: ErrorDetail


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    email: str
    profile_picture: str
    post_count: int

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(
            user_id=user.id,
            name=user.name,
            email=user.email,
            profile_picture=user.profile_picture,
            post_count=len(user.post_ids),
        )
