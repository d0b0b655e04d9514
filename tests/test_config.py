"""Unit tests for core/config.py -- defaults and the SECRET_KEY policy."""

import pytest

from core.config import Settings

LONG_KEY = "k" * 40


def test_defaults_match_session_contract(monkeypatch):
    monkeypatch.delenv("COOKIE_NAME", raising=False)
    monkeypatch.delenv("TOKEN_EXPIRE_SECONDS", raising=False)
    settings = Settings(secret_key=LONG_KEY)
    assert settings.cookie_name == "token"
    assert settings.token_expire_seconds == 7 * 24 * 60 * 60
    assert settings.max_upload_bytes == 5 * 1024 * 1024


def test_production_requires_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(debug=False)


def test_debug_generates_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("JWT_SECRET", raising=False)
    settings = Settings(debug=True)
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected():
    with pytest.raises(ValueError, match="at least 32"):
        Settings(secret_key="short")


def test_environment_overrides(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.setenv("JWT_SECRET", LONG_KEY)
    monkeypatch.setenv("COOKIE_NAME", "session")
    monkeypatch.setenv("PORT", "8080")
    settings = Settings()
    assert settings.secret_key == LONG_KEY
    assert settings.cookie_name == "session"
    assert settings.port == 8080


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValueError):
        Settings(secret_key=LONG_KEY, bcrypt_rounds=3)
