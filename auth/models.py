"""
auth/models.py -- Dataclasses for authentication configuration and results.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in users/models.py -- dataclasses own domain shape; services do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.config import Settings


@dataclass(frozen=True)
class JwtSettings:
    """Token signing configuration, fixed at process start.

    Built once from core.config.Settings by the application lifespan and
    passed into TokenService. Frozen so nothing can change the secret,
    issuer, audience, or lifetime after startup.
    """

    secret_key: str
    issuer: str
    audience: str
    expiration_minutes: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtSettings":
        return cls(
            secret_key=settings.secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            expiration_minutes=settings.jwt_expiration_minutes,
        )


@dataclass(frozen=True)
class UserInfo:
    """Public summary of a user. Never carries credential material."""

    id: int
    email: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful register or login.

    expiration is the token's exp claim as Unix seconds.
    """

    token: str
    expiration: int
    user: UserInfo
