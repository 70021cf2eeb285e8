"""
users/models.py -- Domain dataclasses for the user aggregate.

Pattern: Data class (pure data container, zero logic). Validation rules live
in users/validation.py; merge and persistence rules live in users/store.py.

A User owns its Address and Employment records exclusively. They have no
identity outside the aggregate, so neither dataclass carries an id.

Every field a caller must supply is still typed Optional here: the domain
objects have to be able to represent incomplete input so the validator can
report it, rather than failing at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class Address:
    """Postal address. Replaced wholesale on update, never patched field by field."""

    street: Optional[str] = None
    city: Optional[str] = None
    post_code: Optional[int] = None


@dataclass
class Employment:
    """One employment record.

    end_date is None for a current position. When both dates are present,
    end_date must be strictly after start_date.
    """

    company: Optional[str] = None
    months_of_experience: Optional[int] = None
    salary: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class User:
    """The user aggregate root.

    email is unique across all users (exact, case-sensitive match).

    password_hash / password_salt are None for users created through the CRUD
    surface rather than registration. Such users cannot log in.

    id is None before the record is written to the database.
    """

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    id: Optional[int] = None
    password_hash: Optional[str] = None
    password_salt: Optional[str] = None
    address: Optional[Address] = None
    employments: list[Employment] = field(default_factory=list)

    @property
    def has_credential(self) -> bool:
        return bool(self.password_hash) and bool(self.password_salt)
