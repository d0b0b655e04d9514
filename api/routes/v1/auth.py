"""
api/routes/v1/auth.py -- JSON identity endpoint.

Routes:
  GET /api/v1/auth/me -- the caller's account (requires a valid session cookie)

Login, registration and logout live on the form routes in web/routes.py; those
accept JSON bodies too, so API clients need nothing extra here.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MeResponse
from auth.dependencies import AuthenticationRequired, require_user_id

# Auth policy:
# - GET /api/v1/auth/me: requires auth (require_user_id)
router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, user_id: str = Depends(require_user_id)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    ctx = request.app.state.ctx
    user = ctx.users.get_by_id(user_id, with_posts=True)
    if user is None:
        raise AuthenticationRequired(clear_cookie=True)
    return MeResponse.from_user(user)
