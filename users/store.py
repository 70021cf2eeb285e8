"""
users/store.py -- SQLAlchemy Core persistence layer for the user aggregate.

Uses SQLAlchemy Core (not ORM) so the dataclasses in users/models.py remain
the authoritative domain representation. There is no implicit change
tracking: partial updates go through merge_user(), an explicit function from
(existing, patch) to the new aggregate.

Pattern: Repository + Data Mapper. UserStore is the repository; the _row_to_*
functions are the mappers. Route and service code never touches SQL directly.

Consistency rules enforced here, whoever the caller is:
  - Email is unique. The store checks before writing (fast path with a clean
    error) and the UNIQUE constraint on users.email is the authoritative
    guard: two concurrent creates can both pass the check, and the loser's
    IntegrityError is translated into Conflict.
  - Employment end_date must be after start_date, re-checked at write time
    even when the caller already validated.
  - Each write runs on one connection and commits once, so a failure (or an
    abandoned request) leaves nothing half-written.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = UserStore(get_settings().database_url)     # configured DB
    store = UserStore("sqlite:///:memory:")            # throwaway
    user = store.create(User(first_name="Jane", last_name="Doe", email="jane@x.com"))
    store.update(user.id, patch)
    store.close()
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import SingletonThreadPool

from core.errors import Conflict, InvalidInput, NotFound
from users.models import Address, Employment, User
from users.validation import employment_date_violations

logger = logging.getLogger("usersapi.users")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(150), nullable=False, unique=True),
    Column("password_hash", Text),  # NULL for users created outside registration
    Column("password_salt", Text),
    Column("created_at", String(32), nullable=False),
)

_addresses = Table(
    "addresses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("street", String(200), nullable=False),
    Column("city", String(100), nullable=False),
    Column("post_code", Integer),
)

_employments = Table(
    "employments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("company", String(150), nullable=False),
    Column("months_of_experience", Integer, nullable=False),
    Column("salary", Integer, nullable=False),
    Column("start_date", String(10), nullable=False),  # YYYY-MM-DD
    Column("end_date", String(10)),  # YYYY-MM-DD, NULL = current position
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Foreign keys are off by default in SQLite.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def _is_sqlite_memory(db_url: str) -> bool:
    """True for sqlite://, sqlite:///:memory:, and file:...?mode=memory URIs."""
    url = make_url(db_url)
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _date_to_iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _iso_to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _check_employment_dates(employments: list[Employment]) -> None:
    violations = employment_date_violations(employments)
    if violations:
        raise InvalidInput(violations[0].message, violations)


def merge_user(existing: User, patch: User) -> User:
    """Return the aggregate that results from applying patch to existing.

    Scalars (first name, last name, email) are always taken from patch.
    Address is replaced only when patch.address is not None.
    Employments are replaced wholesale only when patch.employments is
    non-empty; an empty list leaves the existing records untouched.
    Credential material is never changed by an update.
    """
    return replace(
        existing,
        first_name=patch.first_name,
        last_name=patch.last_name,
        email=patch.email,
        address=patch.address if patch.address is not None else existing.address,
        employments=list(patch.employments) if patch.employments else list(existing.employments),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for the user aggregate (User + Address + Employments)."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_args: dict = {}
        if db_url.startswith("sqlite"):
            # The same pooled connection may be used from several worker
            # threads when FastAPI runs sync route handlers.
            connect_args["check_same_thread"] = False
            if _is_sqlite_memory(db_url):
                # One connection per thread; a shared-cache memory DB lives as
                # long as any of them stays open.
                engine_args["poolclass"] = SingletonThreadPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User:
        """Return the fully materialized user. Raises NotFound if absent."""
        with self.engine.connect() as conn:
            return self._load(conn, user_id)

    def get_all(self) -> list[User]:
        """Return every user with nested data, ordered by id. Empty list when none exist."""
        with self.engine.connect() as conn:
            user_rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
            address_rows = conn.execute(_addresses.select()).fetchall()
            employment_rows = conn.execute(_employments.select().order_by(_employments.c.id)).fetchall()

        addresses = {row.user_id: _row_to_address(row) for row in address_rows}
        employments: dict[int, list[Employment]] = defaultdict(list)
        for row in employment_rows:
            employments[row.user_id].append(_row_to_employment(row))
        return [_row_to_user(row, addresses.get(row.id), employments.get(row.id, [])) for row in user_rows]

    def find_by_email(self, email: str) -> Optional[User]:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email)).fetchone()
            if row is None:
                return None
            return self._load(conn, row.id)

    def email_exists(self, email: str) -> bool:
        with self.engine.connect() as conn:
            return self._email_taken(conn, email)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert a new user with its address and employments; return it with its id.

        Raises InvalidInput if an employment ends on or before its start date.
        Raises Conflict if the email already belongs to a user, including when
        a concurrent create wins the race and the UNIQUE constraint fires.
        """
        _check_employment_dates(user.employments)
        with self.engine.connect() as conn:
            if self._email_taken(conn, user.email):
                raise Conflict(f"A user with email '{user.email}' already exists.")
            try:
                result = conn.execute(
                    _users.insert().values(
                        first_name=user.first_name,
                        last_name=user.last_name,
                        email=user.email,
                        password_hash=user.password_hash,
                        password_salt=user.password_salt,
                        created_at=_now_iso(),
                    )
                )
                user_id = result.inserted_primary_key[0]
                self._write_address(conn, user_id, user.address)
                self._write_employments(conn, user_id, user.employments)
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                self._raise_if_email_conflict(exc, user.email)
                raise
        logger.info("Created user id=%d", user_id)
        return self.get_by_id(user_id)

    def update(self, user_id: int, patch: User) -> User:
        """Apply patch to an existing user (see merge_user) and return the result.

        Raises NotFound if user_id does not exist, InvalidInput if a patched
        employment ends on or before its start date, and Conflict if
        patch.email belongs to a different user.
        """
        with self.engine.connect() as conn:
            existing = self._load(conn, user_id)
            _check_employment_dates(patch.employments)
            if self._email_taken(conn, patch.email, exclude_id=user_id):
                raise Conflict(f"A user with email '{patch.email}' already exists.")
            merged = merge_user(existing, patch)
            try:
                conn.execute(
                    _users.update()
                    .where(_users.c.id == user_id)
                    .values(first_name=merged.first_name, last_name=merged.last_name, email=merged.email)
                )
                if patch.address is not None:
                    conn.execute(_addresses.delete().where(_addresses.c.user_id == user_id))
                    self._write_address(conn, user_id, merged.address)
                if patch.employments:
                    conn.execute(_employments.delete().where(_employments.c.user_id == user_id))
                    self._write_employments(conn, user_id, merged.employments)
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                self._raise_if_email_conflict(exc, patch.email, exclude_id=user_id)
                raise
        logger.info("Updated user id=%d", user_id)
        return self.get_by_id(user_id)

    def delete(self, user_id: int) -> None:
        """Remove a user and its owned address and employments. Raises NotFound if absent."""
        with self.engine.connect() as conn:
            conn.execute(_employments.delete().where(_employments.c.user_id == user_id))
            conn.execute(_addresses.delete().where(_addresses.c.user_id == user_id))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            if result.rowcount == 0:
                conn.rollback()
                raise NotFound(f"User with ID {user_id} not found.")
            conn.commit()
        logger.info("Deleted user id=%d", user_id)

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, conn: Connection, user_id: int) -> User:
        row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFound(f"User with ID {user_id} not found.")
        address_row = conn.execute(_addresses.select().where(_addresses.c.user_id == user_id)).fetchone()
        employment_rows = conn.execute(
            _employments.select().where(_employments.c.user_id == user_id).order_by(_employments.c.id)
        ).fetchall()
        address = _row_to_address(address_row) if address_row is not None else None
        return _row_to_user(row, address, [_row_to_employment(r) for r in employment_rows])

    def _email_taken(self, conn: Connection, email: Optional[str], exclude_id: Optional[int] = None) -> bool:
        query = select(_users.c.id).where(_users.c.email == email)
        if exclude_id is not None:
            query = query.where(_users.c.id != exclude_id)
        return conn.execute(query.limit(1)).fetchone() is not None

    def _raise_if_email_conflict(
        self, exc: IntegrityError, email: Optional[str], exclude_id: Optional[int] = None
    ) -> None:
        """Translate a UNIQUE(email) violation into Conflict.

        Other integrity failures (e.g. a NOT NULL column) are left for the
        caller to re-raise as internal errors. A fresh connection is used
        because the failed one has just been rolled back.
        """
        with self.engine.connect() as conn:
            if self._email_taken(conn, email, exclude_id=exclude_id):
                raise Conflict(f"A user with email '{email}' already exists.") from exc

    def _write_address(self, conn: Connection, user_id: int, address: Optional[Address]) -> None:
        if address is None:
            return
        conn.execute(
            _addresses.insert().values(
                user_id=user_id,
                street=address.street,
                city=address.city,
                post_code=address.post_code,
            )
        )

    def _write_employments(self, conn: Connection, user_id: int, employments: list[Employment]) -> None:
        if not employments:
            return
        conn.execute(
            _employments.insert(),
            [
                {
                    "user_id": user_id,
                    "company": e.company,
                    "months_of_experience": e.months_of_experience,
                    "salary": e.salary,
                    "start_date": _date_to_iso(e.start_date),
                    "end_date": _date_to_iso(e.end_date),
                }
                for e in employments
            ],
        )


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_user(row, address: Optional[Address], employments: list[Employment]) -> User:
    return User(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        password_hash=row.password_hash,
        password_salt=row.password_salt,
        address=address,
        employments=employments,
    )


def _row_to_address(row) -> Address:
    return Address(street=row.street, city=row.city, post_code=row.post_code)


def _row_to_employment(row) -> Employment:
    return Employment(
        company=row.company,
        months_of_experience=row.months_of_experience,
        salary=row.salary,
        start_date=_iso_to_date(row.start_date),
        end_date=_iso_to_date(row.end_date),
    )
