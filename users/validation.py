"""
users/validation.py -- Field and cross-field rules for the user aggregate.

Rules are plain (field, predicate, message) triples. A predicate receives the
object being validated and returns True when the rule holds. Rule sets are
tuples of rules evaluated in order; every rule runs (no short-circuiting) so
the result lists every violation, in a stable order. Callers conventionally
surface only the first one.

Nested entities are validated with their own rule set and their field paths
are prefixed ("address.city", "employments[1].end_date").

Email uniqueness is NOT checked here. The store owns that check because only
it has transactional visibility of the other users.

AggregateValidator holds no state. It is safe to share one instance across
threads and requests.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from users.models import Address, Employment, User

# Pragmatic address form: one "@", no whitespace, a dot somewhere in the domain.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

END_DATE_MESSAGE = "End date must be after start date."


@dataclass(frozen=True)
class Violation:
    field: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Either valid (no violations) or an ordered, non-empty list of violations."""

    violations: tuple[Violation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def first(self) -> Violation | None:
        return self.violations[0] if self.violations else None


@dataclass(frozen=True)
class Rule:
    field: str
    predicate: Callable[[Any], bool]
    message: str


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _not_blank(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _present(value: Any) -> bool:
    return value is not None


def _max_length(limit: int) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return value is None or len(value) <= limit

    return check


def _email_form(value: Any) -> bool:
    # Blank values are reported by the not-blank rule, not here.
    if not value:
        return True
    return _EMAIL_RE.match(value) is not None


def _non_negative(value: Any) -> bool:
    return value is None or value >= 0


def _positive_if_present(value: Any) -> bool:
    return value is None or value > 0


def _end_after_start(employment: Employment) -> bool:
    if employment.start_date is None or employment.end_date is None:
        return True
    return employment.end_date > employment.start_date


# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------


def _field(name: str, predicate: Callable[[Any], bool], message: str) -> Rule:
    """Build a rule that applies predicate to a single attribute."""
    return Rule(name, lambda obj: predicate(getattr(obj, name)), message)


USER_RULES: tuple[Rule, ...] = (
    _field("first_name", _not_blank, "FirstName is required."),
    _field("first_name", _max_length(100), "FirstName cannot exceed 100 characters."),
    _field("last_name", _not_blank, "LastName is required."),
    _field("last_name", _max_length(100), "LastName cannot exceed 100 characters."),
    _field("email", _not_blank, "Email is required."),
    _field("email", _email_form, "Email must be a valid email address."),
    _field("email", _max_length(150), "Email cannot exceed 150 characters."),
)

ADDRESS_RULES: tuple[Rule, ...] = (
    _field("street", _not_blank, "Street is required."),
    _field("street", _max_length(200), "Street cannot exceed 200 characters."),
    _field("city", _not_blank, "City is required."),
    _field("city", _max_length(100), "City cannot exceed 100 characters."),
    _field("post_code", _positive_if_present, "Post code must be greater than 0."),
)

EMPLOYMENT_DATE_RULE = Rule("end_date", _end_after_start, END_DATE_MESSAGE)

EMPLOYMENT_RULES: tuple[Rule, ...] = (
    _field("company", _not_blank, "Company is required."),
    _field("company", _max_length(150), "Company name cannot exceed 150 characters."),
    _field("months_of_experience", _present, "Months of experience is required."),
    _field("months_of_experience", _non_negative, "Months of experience cannot be negative."),
    _field("salary", _present, "Salary is required."),
    _field("salary", _non_negative, "Salary cannot be negative."),
    _field("start_date", _present, "Start date is required."),
    EMPLOYMENT_DATE_RULE,
)


def apply_rules(rules: Iterable[Rule], obj: Any, prefix: str = "") -> list[Violation]:
    """Evaluate every rule against obj and return the failures in rule order."""
    return [Violation(prefix + rule.field, rule.message) for rule in rules if not rule.predicate(obj)]


def employment_date_violations(employments: Sequence[Employment]) -> list[Violation]:
    """Return a violation for every employment whose end date is not after its start date.

    Shared with users/store.py, which re-checks the date invariant at write
    time regardless of what the caller validated.
    """
    violations: list[Violation] = []
    for index, employment in enumerate(employments):
        violations.extend(apply_rules((EMPLOYMENT_DATE_RULE,), employment, f"employments[{index}]."))
    return violations


class AggregateValidator:
    """Validates a User together with its Address and Employment records."""

    def validate(self, user: User) -> ValidationResult:
        violations = apply_rules(USER_RULES, user)
        if user.address is not None:
            violations.extend(self.validate_address(user.address))
        for index, employment in enumerate(user.employments or []):
            violations.extend(apply_rules(EMPLOYMENT_RULES, employment, f"employments[{index}]."))
        return ValidationResult(tuple(violations))

    def validate_address(self, address: Address) -> list[Violation]:
        return apply_rules(ADDRESS_RULES, address, "address.")
