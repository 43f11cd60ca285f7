from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.constants import DEFAULT_COMPANY, DEFAULT_LEAVE_BALANCE
from ..core.enums import Role


def default_leave_balance() -> dict:
    return dict(DEFAULT_LEAVE_BALANCE)


@dataclass(frozen=True)
class User:
    """Domain entity: an employee account.

    Note: plain data object, the repository adapter builds it from documents.
    """

    user_id: str
    employee_code: Optional[str]
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: Role
    company: str = DEFAULT_COMPANY
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    salary: float = 0.0
    leave_balance: dict = field(default_factory=default_leave_balance)
    is_active: bool = True
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    last_login: Optional[datetime] = None
    join_date: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now

    def to_public(self) -> dict:
        return {
            "id": self.user_id,
            "employee_code": self.employee_code,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "email": self.email,
            "role": self.role.value,
            "company": self.company,
            "department": self.department,
            "designation": self.designation,
            "phone": self.phone,
            "salary": self.salary,
            "leave_balance": dict(self.leave_balance),
            "is_active": self.is_active,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "join_date": self.join_date.isoformat() if self.join_date else None,
        }


@dataclass(frozen=True)
class NewUser:
    """Validated input for creating a user; password already hashed."""

    employee_code: str
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: Role
    company: str
    department: Optional[str]
    designation: Optional[str]
    phone: Optional[str]
    salary: float
    join_date: date
    leave_balance: dict = field(default_factory=default_leave_balance)


@dataclass(frozen=True)
class AuthUser:
    """The authenticated principal attached to a request."""

    user_id: str
    role: Role
    email: str
    full_name: str

    @classmethod
    def from_user(cls, user: User) -> "AuthUser":
        return cls(user_id=user.user_id, role=user.role, email=user.email, full_name=user.full_name)


@dataclass(frozen=True)
class UserFilter:
    role: Optional[Role] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None
