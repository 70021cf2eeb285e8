"""
core/errors.py -- Error taxonomy shared by the users/ and auth/ layers.

Every expected failure a caller can recover from is a UsersApiError subclass.
Anything else raised from a store or service is, by definition, an internal
failure: the API layer logs it and answers with a generic 500.

  InvalidInput  -- field-level or cross-field validation failure
  Conflict      -- email already belongs to another user
  NotFound      -- the targeted user does not exist
  Unauthorized  -- missing/invalid/expired token, or credential mismatch

The validator and credential manager never raise these for bad input; they
return explicit failure values. The store and the user service raise them.

Layer rule: core/ is the kernel. No imports from api/, auth/, or users/.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from users.validation import Violation


class UsersApiError(Exception):
    """Base class for recoverable, caller-attributable failures."""

    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(UsersApiError):
    """Raised when input fails validation.

    violations holds every rule that failed, in evaluation order. message is
    the first violation's message, which is what callers conventionally show.
    """

    code = "invalid_input"

    def __init__(self, message: str, violations: list[Violation] | None = None) -> None:
        super().__init__(message)
        self.violations = list(violations or [])


class Conflict(UsersApiError):
    code = "conflict"


class NotFound(UsersApiError):
    code = "not_found"


class Unauthorized(UsersApiError):
    code = "unauthorized"
