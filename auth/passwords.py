"""
auth/passwords.py -- Password credential derivation and verification.

Security design decisions:
  KDF: bcrypt_pbkdf via bcrypt.kdf(). Each credential gets 16 random bytes of
       salt from secrets.token_bytes(); the salt keys the derivation, so equal
       passwords never share a hash. The rounds parameter is linear cost, and
       is deliberately slow: callers run it on a worker thread per request.

  Storage: hash and salt are stored as two standard base64 strings. Neither
       the plaintext nor the derived bytes are ever logged.

  Verify: recomputes the derivation with the stored salt and compares with
       hmac.compare_digest (constant time). Any malformed stored value is a
       verification failure, never an exception.

  Timing: equalize_timing() runs one full verification against a dummy
       credential computed at construction, so a login for an unknown email
       costs the same as a login with a wrong password.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import secrets

import bcrypt

_SALT_BYTES = 16
_KEY_BYTES = 64

DEFAULT_ROUNDS = 64


class CredentialManager:
    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if rounds < 1:
            raise ValueError("rounds must be at least 1")
        self.rounds = rounds
        self._dummy_hash, self._dummy_salt = self.derive("usersapi_timing_dummy")

    def derive(self, password: str) -> tuple[str, str]:
        """Return (hash, salt) for password, both base64 encoded.

        Raises ValueError for an empty password; the KDF is undefined for it
        and the transport layer rejects empty passwords before they get here.
        """
        salt = secrets.token_bytes(_SALT_BYTES)
        derived = self._kdf(password, salt)
        return base64.b64encode(derived).decode("ascii"), base64.b64encode(salt).decode("ascii")

    def verify(self, password: str, stored_hash: str, stored_salt: str) -> bool:
        """Return True if password matches the stored hash and salt."""
        try:
            salt = base64.b64decode(stored_salt, validate=True)
            expected = base64.b64decode(stored_hash, validate=True)
        except (binascii.Error, ValueError, TypeError):
            return False
        if not salt or len(expected) != _KEY_BYTES:
            return False
        try:
            computed = self._kdf(password, salt)
        except (ValueError, TypeError, AttributeError):
            return False
        return hmac.compare_digest(computed, expected)

    def equalize_timing(self, password: str) -> None:
        """Spend one verification's worth of work without checking anything real."""
        self.verify(password, self._dummy_hash, self._dummy_salt)

    def _kdf(self, password: str, salt: bytes) -> bytes:
        # Rounds are validated at construction; the library's low-rounds
        # warning would otherwise fire on every call in tests.
        return bcrypt.kdf(
            password=password.encode("utf-8"),
            salt=salt,
            desired_key_bytes=_KEY_BYTES,
            rounds=self.rounds,
            ignore_few_rounds=True,
        )
