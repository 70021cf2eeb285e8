"""
API request and response models for the Users API REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in users/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Field names are snake_case in Python and camelCase on the wire
(first_name <-> firstName). Responses are serialized by alias.

Request models check types only. Business rules (required fields, lengths,
date ordering) are enforced by users.validation so that every caller -- HTTP
or not -- gets the same rules and the same messages.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

import re
from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from auth.models import AuthResult
from users.models import Address, Employment, User
from users.validation import Violation

# Attribute name at the start of one violation path segment ("end_date", "employments" in "employments[0]").
_LEADING_NAME = re.compile(r"^[a-z0-9_]+")

# ---------------------------------------------------------------------------
# Shared config
# ---------------------------------------------------------------------------

_REQUEST_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
)

# Auth bodies carry passwords, which must reach the KDF unmodified. Fields
# that should be stripped opt in one by one.
_AUTH_REQUEST_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
)

_RESPONSE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


# ---------------------------------------------------------------------------
# User aggregate -- request models
# ---------------------------------------------------------------------------


class AddressBody(BaseModel):
    model_config = _REQUEST_CONFIG

    street: Optional[str] = None
    city: Optional[str] = None
    post_code: Optional[int] = None

    def to_domain(self) -> Address:
        return Address(street=self.street, city=self.city, post_code=self.post_code)


class EmploymentBody(BaseModel):
    model_config = _REQUEST_CONFIG

    company: Optional[str] = None
    months_of_experience: Optional[int] = None
    salary: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_domain(self) -> Employment:
        return Employment(
            company=self.company,
            months_of_experience=self.months_of_experience,
            salary=self.salary,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class UserBody(BaseModel):
    """Request body for POST /api/v1/users and PUT /api/v1/users/{id}.

    On PUT, address=null leaves the stored address unchanged and an empty
    employments list leaves the stored employments unchanged. Names and email
    are always required.
    """

    model_config = _REQUEST_CONFIG

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[AddressBody] = None
    employments: list[EmploymentBody] = Field(default_factory=list)

    def to_domain(self) -> User:
        return User(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            address=self.address.to_domain() if self.address is not None else None,
            employments=[e.to_domain() for e in self.employments],
        )


# ---------------------------------------------------------------------------
# User aggregate -- response models
# ---------------------------------------------------------------------------


class AddressResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    street: str
    city: str
    post_code: Optional[int] = None


class EmploymentResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    company: str
    months_of_experience: int
    salary: int
    start_date: date
    end_date: Optional[date] = None


class UserResponse(BaseModel):
    """A user with nested address and employments. Never includes credential material."""

    model_config = _RESPONSE_CONFIG

    id: int
    first_name: str
    last_name: str
    email: str
    address: Optional[AddressResponse] = None
    employments: list[EmploymentResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        """Build a UserResponse from a domain User.

        The mapping lives here, colocated with the output model, rather than
        scattered across route handlers.
        """
        address = None
        if user.address is not None:
            address = AddressResponse(
                street=user.address.street,
                city=user.address.city,
                post_code=user.address.post_code,
            )
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            address=address,
            employments=[
                EmploymentResponse(
                    company=e.company,
                    months_of_experience=e.months_of_experience,
                    salary=e.salary,
                    start_date=e.start_date,
                    end_date=e.end_date,
                )
                for e in user.employments
            ],
        )


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Passwords are taken byte for byte: surrounding whitespace is part of the
    secret. Names and email are stripped like every other request field.
    """

    model_config = _AUTH_REQUEST_CONFIG

    first_name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]
    last_name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]
    email: Annotated[str, StringConstraints(strip_whitespace=True, max_length=150)]
    password: str = Field(min_length=1, max_length=255)
    confirm_password: str = Field(min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login. password is not stripped."""

    model_config = _AUTH_REQUEST_CONFIG

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=150)]
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserInfoResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    id: int
    email: str
    first_name: str
    last_name: str


class AuthResponse(BaseModel):
    """Response for a successful register or login.

    expiration is the token's expiry as Unix seconds.
    """

    model_config = _RESPONSE_CONFIG

    token: str
    expiration: int
    user: UserInfoResponse

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            token=result.token,
            expiration=result.expiration,
            user=UserInfoResponse(
                id=result.user.id,
                email=result.user.email,
                first_name=result.user.first_name,
                last_name=result.user.last_name,
            ),
        )


class ValidateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    """One failed rule. field is a camelCase path matching the request body."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    @classmethod
    def from_violation(cls, violation: Violation) -> "FieldError":
        # "employments[0].end_date" -> "employments[0].endDate"
        field = ".".join(_LEADING_NAME.sub(lambda m: to_camel(m.group(0)), part) for part in violation.field.split("."))
        return cls(field=field, message=violation.message)


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    violations: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail
