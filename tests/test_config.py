"""Unit tests for core/config.py -- Settings validation.

Covers:
- SECRET_KEY policy: generated in debug, required in production, 32+ chars
- token lifetime and KDF rounds bounds
- environment variables override defaults
- the database URL default (the only one; UserStore takes no default)
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings

GOOD_KEY = "k" * 32


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SECRET_KEY",
        "DATABASE_URL",
        "JWT_ISSUER",
        "JWT_AUDIENCE",
        "JWT_EXPIRATION_MINUTES",
        "PASSWORD_KDF_ROUNDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DEBUG", "false")


def test_production_requires_secret_key() -> None:
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None)


def test_debug_generates_secret_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    settings = Settings(_env_file=None)
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, secret_key="short")


def test_defaults() -> None:
    settings = Settings(_env_file=None, secret_key=GOOD_KEY)
    assert settings.jwt_issuer == "users-api"
    assert settings.jwt_audience == "users-api-clients"
    assert settings.jwt_expiration_minutes == 60
    assert settings.password_kdf_rounds == 64


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("JWT_ISSUER", "issuer-from-env")
    monkeypatch.setenv("JWT_EXPIRATION_MINUTES", "15")
    settings = Settings(_env_file=None)
    assert settings.secret_key == GOOD_KEY
    assert settings.jwt_issuer == "issuer-from-env"
    assert settings.jwt_expiration_minutes == 15


@pytest.mark.parametrize("minutes", [0, -5])
def test_non_positive_expiration_rejected(minutes: int) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=GOOD_KEY, jwt_expiration_minutes=minutes)


def test_zero_kdf_rounds_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=GOOD_KEY, password_kdf_rounds=0)


def test_low_kdf_rounds_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="usersapi.config"):
        Settings(_env_file=None, secret_key=GOOD_KEY, password_kdf_rounds=4)
    assert "below the recommended minimum" in caplog.text


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_default_database_is_sqlite_file_beside_users_package() -> None:
    settings = Settings(_env_file=None, secret_key=GOOD_KEY)
    assert settings.database_url.startswith("sqlite:///")
    assert settings.database_url.replace("\\", "/").endswith("/users/usersapi.db")
