"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the Users API happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      application lifespan calls it; services receive immutable values built
      from it (see auth.models.JwtSettings) rather than reading it themselves.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, jwt_issuer -> JWT_ISSUER).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates a key with a warning,
      production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every token the service issues.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or users/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("usersapi.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'users' / 'usersapi.db'}"

# bcrypt_pbkdf rounds below this are flagged by the bcrypt library itself.
_RECOMMENDED_KDF_ROUNDS = 50


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    jwt_issuer: str = "users-api"
    jwt_audience: str = "users-api-clients"
    jwt_expiration_minutes: int = 60

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    password_kdf_rounds: int = 64

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_lifetimes(self) -> "Settings":
        if self.jwt_expiration_minutes <= 0:
            raise ValueError("JWT_EXPIRATION_MINUTES must be a positive number of minutes.")
        if self.password_kdf_rounds < 1:
            raise ValueError("PASSWORD_KDF_ROUNDS must be at least 1.")
        if self.password_kdf_rounds < _RECOMMENDED_KDF_ROUNDS:
            logger.warning(
                "PASSWORD_KDF_ROUNDS=%d is below the recommended minimum of %d.",
                self.password_kdf_rounds,
                _RECOMMENDED_KDF_ROUNDS,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
