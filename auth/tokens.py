"""
auth/tokens.py -- Bearer token issuance and validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the configured secret
       and carry sub (user id), email, given_name, family_name, a random jti,
       iss, aud, and exp. The wire format is the compact serialization:
       base64url(header).base64url(payload).base64url(signature).

  Validation checks signature, issuer, audience, and expiry, with zero leeway.
       iss, aud, and exp are required claims -- a token without one of them is
       invalid even if the signature checks out. Verification returns False on
       any failure and never raises; the route layer turns that into a 401.

  Stateless: there is no revocation list. A token is good until exp.

  Config: TokenService receives an immutable JwtSettings at construction. It
       never reads the environment itself.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from auth.models import JwtSettings

logger = logging.getLogger("usersapi.auth")

_ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "leeway": 0,
    "require_exp": True,
    "require_iss": True,
    "require_aud": True,
}


class TokenService:
    def __init__(self, settings: JwtSettings) -> None:
        if len(settings.secret_key) < 32:
            raise ValueError("JWT secret key must be at least 32 characters.")
        self._settings = settings

    def issue(
        self,
        subject_id: int,
        email: str,
        first_name: str,
        last_name: str,
        ttl_minutes: Optional[int] = None,
    ) -> tuple[str, int]:
        """Encode a signed JWT for the given user.

        Args:
            subject_id:  Numeric user id, stored as the string sub claim.
            email:       Stored as the email claim.
            first_name:  Stored as given_name.
            last_name:   Stored as family_name.
            ttl_minutes: Token lifetime. None uses the configured expiration
                         window.

        Returns:
            (token, expires_at) where expires_at is Unix seconds.
        """
        minutes = self._settings.expiration_minutes if ttl_minutes is None else ttl_minutes
        expires_at = int((datetime.now(timezone.utc) + timedelta(minutes=minutes)).timestamp())
        claims = {
            "sub": str(subject_id),
            "email": email,
            "given_name": first_name,
            "family_name": last_name,
            "jti": str(uuid.uuid4()),
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._settings.secret_key, algorithm=_ALGORITHM)
        return token, expires_at

    def decode(self, token: Optional[str]) -> dict | None:
        """Decode and verify a JWT. Returns the claims dict or None on any failure."""
        if not token:
            return None
        try:
            return jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[_ALGORITHM],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options=_DECODE_OPTIONS,
            )
        except JWTError as exc:
            logger.info("Token rejected: %s", exc.__class__.__name__)
            return None
        except (ValueError, TypeError, AttributeError):
            # Structurally broken input that slipped past jose's own checks.
            logger.info("Token rejected: malformed")
            return None

    def validate(self, token: Optional[str]) -> bool:
        """Return True if token is signed by us, for us, and not expired."""
        return self.decode(token) is not None
