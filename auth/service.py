"""
auth/service.py -- Register and login flows.

AuthService composes the credential manager, token service, user store, and
aggregate validator. Every business rejection comes back as None -- the
caller cannot tell "email taken" from "passwords differ", or "unknown email"
from "wrong password". That is deliberate: distinct answers would let a
client enumerate accounts.

The reason for each rejection is logged at WARNING (email only, never the
password) so operators can still see what happened.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.models import AuthResult, UserInfo
from auth.passwords import CredentialManager
from auth.tokens import TokenService
from core.errors import Conflict
from users.models import User
from users.store import UserStore
from users.validation import AggregateValidator

logger = logging.getLogger("usersapi.auth")


class AuthService:
    def __init__(
        self,
        store: UserStore,
        credentials: CredentialManager,
        tokens: TokenService,
        validator: AggregateValidator,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.tokens = tokens
        self.validator = validator

    def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> Optional[AuthResult]:
        """Create a user with a password credential and return a token for it.

        Returns None if the passwords differ, the user fails validation, or the
        email is already registered (including losing a concurrent race for it).
        """
        if password != confirm_password:
            logger.warning("Registration failed: passwords do not match for %s", email)
            return None
        if not password:
            logger.warning("Registration failed: empty password for %s", email)
            return None

        candidate = User(first_name=first_name, last_name=last_name, email=email)
        result = self.validator.validate(candidate)
        if not result.is_valid:
            logger.warning("Registration failed: %s for %s", result.first.message, email)
            return None
        if self.store.email_exists(email):
            logger.warning("Registration failed: email already exists: %s", email)
            return None

        candidate.password_hash, candidate.password_salt = self.credentials.derive(password)
        try:
            created = self.store.create(candidate)
        except Conflict:
            logger.warning("Registration failed: email already exists: %s", email)
            return None

        logger.info("User registered successfully: %s", email)
        return self._issue(created)

    def login(self, email: str, password: str) -> Optional[AuthResult]:
        """Verify email and password and return a fresh token, or None.

        Runs exactly one credential verification whether or not the email is
        known, so response time does not reveal which emails exist.
        """
        user = self.store.find_by_email(email)
        if user is None or not user.has_credential:
            self.credentials.equalize_timing(password)
            logger.warning("Login failed: user not found or missing credentials: %s", email)
            return None
        if not self.credentials.verify(password, user.password_hash, user.password_salt):
            logger.warning("Login failed: invalid password for %s", email)
            return None
        return self._issue(user)

    def validate_token(self, token: Optional[str]) -> bool:
        return self.tokens.validate(token)

    def _issue(self, user: User) -> AuthResult:
        token, expiration = self.tokens.issue(user.id, user.email, user.first_name, user.last_name)
        return AuthResult(
            token=token,
            expiration=expiration,
            user=UserInfo(
                id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
            ),
        )
