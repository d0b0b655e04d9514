"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Postboard happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. cookie_name -> COOKIE_NAME). Type coercion and validation are built in.

  @model_validator(mode="after"): dev mode (DEBUG=true) generates a SECRET_KEY
      with a warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key makes session tokens forgeable.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or social/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("postboard.config")

_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (DEBUG=true still required for the
    secret key to be generated).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    database_url: str = f"sqlite:///{_ROOT / 'postboard.db'}"

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". JWT_SECRET is
    # accepted for deployments migrating from the old environment layout.
    secret_key: str = Field(default="", validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"))
    cookie_name: str = "token"
    secure_cookies: bool = False
    token_expire_seconds: int = 7 * 24 * 60 * 60
    bcrypt_rounds: int = Field(default=10, ge=4, le=15)

    # ------------------------------------------------------------------
    # Profiles and uploads
    # ------------------------------------------------------------------

    uploads_dir: Path = _ROOT / "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    default_profile_picture: str = "/static/img/default-profile.svg"

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    # Owned-post list consistency check. 0 disables the periodic loop; the
    # startup pass and the CLI command still run.
    reconcile_interval_seconds: int = 6 * 60 * 60

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing, since every
            issued cookie would silently become invalid on restart.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
