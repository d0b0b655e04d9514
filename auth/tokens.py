"""
auth/tokens.py -- Session token codec, password hashing, and cookie helpers.

Security design decisions:
  Session token: python-jose JWT with HS256. The only identity claim is
       "sub" (the user id); "exp" bounds validity to Settings.token_expire_seconds
       (7 days). Nothing is stored server-side, so logout only clears the
       cookie and a stolen token stays valid until it expires. Verification
       returns None on any failure -- the access gate turns that into a
       redirect or a 401.

  Passwords: bcrypt with a fresh random salt per hash. The cost factor comes
       from Settings.bcrypt_rounds (default 10, roughly 100ms per verify).
       _dummy_hash(rounds) enables timing equalization in authenticate_user() so
       response time does not reveal whether an email is registered.

  The signing secret is passed in by the caller (from AppContext.settings)
       rather than read from a module global, so tests can issue tokens with
       their own key.

Layer rule: no imports from api/, web/, or social/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore
    from core.config import Settings

_ALGORITHM = "HS256"
_DEFAULT_ROUNDS = 10

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = _DEFAULT_ROUNDS) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated before hashing; bcrypt 4.x
    rejects longer input outright instead of truncating silently.
    """
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    """Return a throwaway hash at the given cost, computed once per cost."""
    return hash_password("postboard_timing_dummy", rounds=rounds)


# Warm the default cost at module load so the first login attempt is not
# measurably slower than subsequent ones.
_dummy_hash(_DEFAULT_ROUNDS)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, secret_key: str, expire_seconds: int) -> str:
    """Encode a signed session token for user_id, valid for expire_seconds."""
    expire = datetime.now(timezone.utc) + timedelta(seconds=expire_seconds)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> str | None:
    """Verify a session token and return the embedded user id.

    Returns None when the signature does not match, the token has expired,
    the token is malformed, or the subject claim is missing.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        return None
    return user_id


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str, rounds: int = _DEFAULT_ROUNDS) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown email: bcrypt runs against a dummy hash at the same cost
      (rounds) that real hashes are created with
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _dummy_hash(rounds))
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": sent on top-level navigations, not on cross-site POSTs.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the token expiry so both lapse together.
    """
    response.set_cookie(
        settings.cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.token_expire_seconds,
    )


def clear_auth_cookie(response, settings: Settings) -> None:
    response.delete_cookie(settings.cookie_name, httponly=True, samesite="lax")
