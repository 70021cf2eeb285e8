"""
api/main.py -- FastAPI application entry point for the Users API.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
  2. log_requests   -- method, path, status, latency for every request

Lifespan composes the service graph once at startup, in dependency order,
and stores each component on app.state. Nothing is looked up at request
time beyond app.state; there is no service locator.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, FieldError
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.models import JwtSettings
from auth.passwords import CredentialManager
from auth.service import AuthService
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import Conflict, InvalidInput, NotFound, Unauthorized, UsersApiError
from users.service import UserService
from users.store import UserStore
from users.validation import AggregateValidator

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("usersapi.api")

_STATUS_BY_ERROR: dict[type[UsersApiError], int] = {
    InvalidInput: 400,
    Unauthorized: 401,
    NotFound: 404,
    Conflict: 409,
}


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, settings: Settings, store: UserStore) -> None:
    """Build the service graph and attach it to app.state.

    Order matters: each component only receives components built before it.
    Configuration is frozen into JwtSettings here and never re-read.
    """
    credentials = CredentialManager(rounds=settings.password_kdf_rounds)
    tokens = TokenService(JwtSettings.from_settings(settings))
    validator = AggregateValidator()
    app.state.user_store = store
    app.state.tokens = tokens
    app.state.user_service = UserService(store, validator)
    app.state.auth_service = AuthService(store, credentials, tokens, validator)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown, even if a request handler raised.
    """
    logger.info("Users API starting up")
    settings = get_settings()
    wire_services(app, settings, UserStore(settings.database_url))
    logger.info("Services initialized (issuer=%s, audience=%s)", settings.jwt_issuer, settings.jwt_audience)

    yield

    app.state.user_store.close()
    logger.info("Users API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Users API",
    description="Users with addresses and employment history, plus bearer-token authentication.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next to report latency.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(UsersApiError)
async def users_api_error_handler(request: Request, exc: UsersApiError) -> JSONResponse:
    """Map the domain error taxonomy onto HTTP status codes."""
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    violations = None
    if isinstance(exc, InvalidInput) and exc.violations:
        violations = [FieldError.from_violation(v) for v in exc.violations]
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, violations=violations)
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail schema validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for HTTP exceptions (unmatched routes, 405, ...).

    Registered on Starlette's base class: the router raises that one, not
    FastAPI's subclass, for unknown paths and wrong methods. Headers such as
    Allow on a 405 are passed through.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(exclude_none=True),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(exclude_none=True),
    )
