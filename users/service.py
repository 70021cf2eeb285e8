"""
users/service.py -- Application service behind the /users CRUD routes.

Runs the aggregate validator before handing writes to the store, and turns a
failed validation into InvalidInput. Reads and deletes pass straight through.

Every required scalar is validated on update exactly as on create: a missing
(None) or blank first name, last name, or email is rejected, never treated as
"leave unchanged". Only Address and Employments have leave-unchanged
semantics, and those are applied by the store's merge.
"""

from __future__ import annotations

from core.errors import InvalidInput
from users.models import User
from users.store import UserStore
from users.validation import AggregateValidator


class UserService:
    def __init__(self, store: UserStore, validator: AggregateValidator) -> None:
        self.store = store
        self.validator = validator

    def create_user(self, user: User) -> User:
        self._validate(user)
        return self.store.create(user)

    def get_user(self, user_id: int) -> User:
        return self.store.get_by_id(user_id)

    def list_users(self) -> list[User]:
        return self.store.get_all()

    def update_user(self, user_id: int, patch: User) -> User:
        # Existence first, so an unknown id is a 404 even when the body is also invalid.
        self.store.get_by_id(user_id)
        self._validate(patch)
        return self.store.update(user_id, patch)

    def delete_user(self, user_id: int) -> None:
        self.store.delete(user_id)

    def _validate(self, user: User) -> None:
        result = self.validator.validate(user)
        if not result.is_valid:
            raise InvalidInput(result.first.message, list(result.violations))
