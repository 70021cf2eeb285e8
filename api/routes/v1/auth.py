"""
api/routes/v1/auth.py -- Registration, login, and token validation endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account; returns a token
  POST /api/v1/auth/login      -- email/password login; returns a token
  GET  /api/v1/auth/validate   -- check the request's bearer token

Security:
  All register failures share one error code and message; so do all login
  failures. The service already collapses the reasons into None -- the
  routes must not reintroduce the distinction.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, ErrorDetail, ErrorResponse, LoginRequest, RegisterRequest, ValidateResponse
from auth.dependencies import bearer_token
from auth.service import AuthService
from core.errors import Unauthorized

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - GET  /api/v1/auth/validate: public -- it *is* the token check
router = APIRouter()


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(exclude_none=True),
    )


@router.post("/auth/register", response_model=AuthResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user with a password and return a bearer token.

    Password derivation is CPU-bound and deliberately slow. The handler is a
    plain def so FastAPI runs it on the thread pool, not the event loop.
    """
    auth: AuthService = request.app.state.auth_service
    result = auth.register(
        body.first_name,
        body.last_name,
        body.email,
        body.password,
        body.confirm_password,
    )
    if result is None:
        return _no_store(
            _error(
                400,
                "registration_failed",
                "Registration failed. Email may already be in use or passwords don't match.",
            )
        )
    return _no_store(JSONResponse(content=AuthResponse.from_result(result).model_dump(by_alias=True, mode="json")))


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Returns the same error for an unknown email and a wrong password
    ("bad_credentials") to avoid leaking which emails are registered.
    """
    auth: AuthService = request.app.state.auth_service
    result = auth.login(body.email, body.password)
    if result is None:
        return _no_store(_error(401, "bad_credentials", "Invalid email or password."))
    return _no_store(JSONResponse(content=AuthResponse.from_result(result).model_dump(by_alias=True, mode="json")))


@router.get("/auth/validate", response_model=ValidateResponse)
async def validate(request: Request) -> ValidateResponse:
    """Return {"valid": true} for a good bearer token; 401 otherwise."""
    auth: AuthService = request.app.state.auth_service
    token = bearer_token(request)
    if token is None:
        raise Unauthorized("No valid authorization header found.")
    if not auth.validate_token(token):
        raise Unauthorized("Invalid token.")
    return ValidateResponse(valid=True)
