"""
tests/conftest.py -- Shared test fixtures for the Users API test suite.

This module provides:
  - store / credentials / tokens / auth_service / user_service: unit-level
    components built the same way api.main.wire_services builds them
  - api_client: TestClient over the real FastAPI app with a patched lifespan
    and a registered user's bearer token

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit fixtures run on one thread, so plain :memory: is fine.

Password KDF rounds are lowered to keep the suite fast; the derivation is
otherwise identical to production.

The DEBUG env var is set before any app import so get_settings() would
auto-generate SECRET_KEY instead of raising if anything reaches it.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set DEBUG before any core/api import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import JwtSettings
from auth.passwords import CredentialManager
from auth.service import AuthService
from auth.tokens import TokenService
from core.config import Settings
from users.service import UserService
from users.store import UserStore
from users.validation import AggregateValidator

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789abcdef"
TEST_ISSUER = "users-api-tests"
TEST_AUDIENCE = "users-api-test-clients"
TEST_KDF_ROUNDS = 2


# ---------------------------------------------------------------------------
# Unit-level components
# ---------------------------------------------------------------------------


@pytest.fixture
def jwt_settings() -> JwtSettings:
    return JwtSettings(secret_key=TEST_SECRET, issuer=TEST_ISSUER, audience=TEST_AUDIENCE, expiration_minutes=60)


@pytest.fixture
def tokens(jwt_settings: JwtSettings) -> TokenService:
    return TokenService(jwt_settings)


@pytest.fixture(scope="session")
def credentials() -> CredentialManager:
    return CredentialManager(rounds=TEST_KDF_ROUNDS)


@pytest.fixture
def validator() -> AggregateValidator:
    return AggregateValidator()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def user_service(store: UserStore, validator: AggregateValidator) -> UserService:
    return UserService(store, validator)


@pytest.fixture
def auth_service(
    store: UserStore,
    credentials: CredentialManager,
    tokens: TokenService,
    validator: AggregateValidator,
) -> AuthService:
    return AuthService(store, credentials, tokens, validator)


# ---------------------------------------------------------------------------
# API integration
# ---------------------------------------------------------------------------


def _test_settings() -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        jwt_issuer=TEST_ISSUER,
        jwt_audience=TEST_AUDIENCE,
        password_kdf_rounds=TEST_KDF_ROUNDS,
    )


def _patch_lifespan(settings: Settings, store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the real service graph around a pre-created test store so routes
    see an isolated DB rather than the production file.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    A user is registered through the real AuthService before the client
    starts; its token goes in Authorization headers. Each test module gets
    its own named in-memory DB.
    """
    db_name = request.module.__name__.replace(".", "_")
    store = UserStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    settings = _test_settings()

    app.router.lifespan_context = _patch_lifespan(settings, store)

    with TestClient(app, raise_server_exceptions=True) as client:
        auth: AuthService = app.state.auth_service
        result = auth.register("Admin", "User", "admin@example.com", "adminpass123", "adminpass123")
        assert result is not None
        yield client, result.token, result.user.id

    store.close()
