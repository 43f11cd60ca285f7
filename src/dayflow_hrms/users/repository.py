from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import NewUser, User, UserFilter


class UserRepository(Protocol):
    """Repository interface for users.

    Note: services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, new_user: NewUser) -> str:
        raise NotImplementedError

    def update_fields(self, user_id: str, fields: dict) -> bool:
        raise NotImplementedError

    def set_active(self, user_id: str, *, is_active: bool) -> bool:
        raise NotImplementedError

    def increment_login_attempts(self, user_id: str) -> int:
        """Atomically bump the failed-login counter and return the new value."""

        raise NotImplementedError

    def lock_account(self, user_id: str, *, until: datetime) -> bool:
        raise NotImplementedError

    def reset_login_state(self, user_id: str, *, last_login: Optional[datetime] = None) -> bool:
        raise NotImplementedError

    def adjust_leave_balance(self, user_id: str, *, bucket: str, delta: float) -> bool:
        raise NotImplementedError

    def list_users(self, filters: UserFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[User], int]:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError


class CounterRepository(Protocol):
    def next_sequence(self, key: str) -> int:
        """Atomically increment and return the counter stored under key."""

        raise NotImplementedError
