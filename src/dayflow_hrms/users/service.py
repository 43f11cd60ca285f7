from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.validators import (
    require_bool,
    require_choice,
    require_email,
    require_min_length,
    require_non_empty,
    require_non_negative_number,
)
from ..core.constants import (
    DEFAULT_COMPANY,
    DEFAULT_CREATED_PASSWORD,
    LOCK_HOURS,
    MAX_LOGIN_ATTEMPTS,
    MIN_PASSWORD_LENGTH,
)
from ..core.enums import Department, Role, SELF_REGISTER_ROLES, STAFF_ROLES
from ..core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from .id_generator import EmployeeCodeGenerator
from .model import AuthUser, NewUser, User, UserFilter, default_leave_balance
from .repository import UserRepository
from .tokens import issue_access_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

_UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "phone",
    "department",
    "designation",
    "salary",
    "role",
    "is_active",
    "leave_balance",
    "password",
}


@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str


def _clean_department(value: Optional[str]) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return require_choice(str(value).strip(), Department, "department").value


def _build_new_user(
    users: UserRepository,
    codes: EmployeeCodeGenerator,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: Role,
    company: Optional[str],
    department: Optional[str],
    designation: Optional[str],
    phone: Optional[str],
    salary,
    now: datetime,
) -> NewUser:
    first_name = require_non_empty(first_name, "First name")
    last_name = require_non_empty(last_name, "Last name")
    email = require_email(email)
    require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

    if users.get_by_email(email):
        raise ConflictError("User already exists with this email")

    company = (company or "").strip().upper() or DEFAULT_COMPANY
    join_date = now.date()
    return NewUser(
        employee_code=codes.generate(company=company, first_name=first_name, last_name=last_name, join_date=join_date),
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        company=company,
        department=_clean_department(department),
        designation=(designation or "").strip() or None,
        phone=(phone or "").strip() or None,
        salary=require_non_negative_number(salary or 0, "Salary"),
        join_date=join_date,
        leave_balance=default_leave_balance(),
    )


class AuthService:
    """Use cases: register, login with lockout, resolve the current user."""

    def __init__(
        self,
        users: UserRepository,
        codes: EmployeeCodeGenerator,
        *,
        token_issuer: Callable[[User], str] = issue_access_token,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lock_hours: int = LOCK_HOURS,
    ):
        self._users = users
        self._codes = codes
        self._issue_token = token_issuer
        self._max_attempts = int(max_attempts)
        self._lock_for = timedelta(hours=lock_hours)

    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role=Role.EMPLOYEE,
        company: Optional[str] = None,
        department: Optional[str] = None,
        designation: Optional[str] = None,
        phone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        role = require_choice(role or Role.EMPLOYEE, Role, "role")
        if role not in SELF_REGISTER_ROLES:
            raise ValidationError("Admin accounts cannot be self-registered")

        new_user = _build_new_user(
            self._users,
            self._codes,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            role=role,
            company=company,
            department=department,
            designation=designation,
            phone=phone,
            salary=0,
            now=now or now_local(),
        )
        user_id = self._users.create_user(new_user)
        user = self._users.get_by_id(user_id)
        logger.info("Registered %s as %s (%s)", new_user.email, role.value, new_user.employee_code)
        return AuthResult(user=user, token=self._issue_token(user))

    def _find_by_identifier(self, identifier: str) -> Optional[User]:
        identifier = (identifier or "").strip()
        if not identifier:
            return None
        if "@" in identifier:
            return self._users.get_by_email(identifier.lower())
        return self._users.get_by_employee_code(identifier.upper())

    def login(self, identifier: str, password: str, *, now: Optional[datetime] = None) -> AuthResult:
        now = now or now_local()
        if not identifier or not password:
            raise ValidationError("Please provide email/login id and password")

        user = self._find_by_identifier(identifier)
        if not user:
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.is_locked(now):
            raise AccountLockedError("Account is temporarily locked due to too many failed login attempts")

        if not user.is_active:
            raise AuthorizationError("Account is deactivated. Please contact an administrator")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder or corrupted hashes
            ok = False

        if not ok:
            self._register_failure(user, now)
            raise AuthenticationError(INVALID_CREDENTIALS)

        self._users.reset_login_state(user.user_id, last_login=now)
        user = self._users.get_by_id(user.user_id)
        return AuthResult(user=user, token=self._issue_token(user))

    def _register_failure(self, user: User, now: datetime) -> None:
        if user.lock_until is not None and user.lock_until <= now:
            # previous lock expired, start counting again
            self._users.reset_login_state(user.user_id)

        attempts = self._users.increment_login_attempts(user.user_id)
        if attempts >= self._max_attempts:
            self._users.lock_account(user.user_id, until=now + self._lock_for)
            logger.warning("Locked account %s after %d failed logins", user.email, attempts)

    def resolve(self, user_id: str) -> AuthUser:
        """Load the principal behind a verified token."""
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return AuthUser.from_user(user)

    def me(self, actor: AuthUser) -> User:
        user = self._users.get_by_id(actor.user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


class UserService:
    """Use cases: manage the employee directory."""

    def __init__(self, users: UserRepository, codes: EmployeeCodeGenerator):
        self._users = users
        self._codes = codes

    def list_all(self, actor: AuthUser) -> Sequence[User]:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can list all accounts")
        users, _ = self._users.list_users(UserFilter())
        return users

    def list_users(self, actor: AuthUser, filters: UserFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[User], int]:
        if actor.role not in STAFF_ROLES:
            raise AuthorizationError("You do not have permission to view employees")
        return self._users.list_users(filters, skip=skip, limit=limit)

    def get_user(self, actor: AuthUser, user_id: str) -> User:
        if actor.role not in STAFF_ROLES and actor.user_id != user_id:
            raise AuthorizationError("You can only view your own profile")
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_user(
        self,
        actor: AuthUser,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: Optional[str] = None,
        role=Role.EMPLOYEE,
        company: Optional[str] = None,
        department: Optional[str] = None,
        designation: Optional[str] = None,
        phone: Optional[str] = None,
        salary=0,
        now: Optional[datetime] = None,
    ) -> User:
        if actor.role not in {Role.ADMIN, Role.HR_OFFICER}:
            raise AuthorizationError("You do not have permission to create employees")
        role = require_choice(role or Role.EMPLOYEE, Role, "role")
        if role == Role.ADMIN and actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can create administrator accounts")

        new_user = _build_new_user(
            self._users,
            self._codes,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password or DEFAULT_CREATED_PASSWORD,
            role=role,
            company=company,
            department=department,
            designation=designation,
            phone=phone,
            salary=salary,
            now=now or now_local(),
        )
        user_id = self._users.create_user(new_user)
        logger.info("%s created user %s (%s)", actor.email, new_user.email, new_user.employee_code)
        return self._users.get_by_id(user_id)

    def update_user(self, actor: AuthUser, user_id: str, fields: dict) -> User:
        if actor.role not in {Role.ADMIN, Role.HR_OFFICER}:
            raise AuthorizationError("You do not have permission to update employees")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        update = {k: v for k, v in (fields or {}).items() if k in _UPDATABLE_FIELDS}
        if not update:
            raise ValidationError("No updatable fields provided")

        if actor.role != Role.ADMIN and user.role == Role.ADMIN:
            raise AuthorizationError("Only administrators can modify administrator accounts")

        if "role" in update:
            update["role"] = require_choice(update["role"], Role, "role")
            if update["role"] == Role.ADMIN and actor.role != Role.ADMIN:
                raise AuthorizationError("Only administrators can grant the Admin role")
        if "first_name" in update:
            update["first_name"] = require_non_empty(update["first_name"], "First name")
        if "last_name" in update:
            update["last_name"] = require_non_empty(update["last_name"], "Last name")
        if "department" in update:
            update["department"] = _clean_department(update["department"])
        if "salary" in update:
            update["salary"] = require_non_negative_number(update["salary"], "Salary")
        if "is_active" in update:
            update["is_active"] = require_bool(update["is_active"], "is_active")
        if "leave_balance" in update:
            if not isinstance(update["leave_balance"], dict):
                raise ValidationError("leave_balance must be an object")
            balance = dict(user.leave_balance)
            for bucket, days in update["leave_balance"].items():
                balance[str(bucket)] = require_non_negative_number(days, f"leave_balance.{bucket}")
            update["leave_balance"] = balance
        if "password" in update:
            password = require_min_length(update.pop("password"), "Password", MIN_PASSWORD_LENGTH)
            update["password_hash"] = generate_password_hash(password)

        self._users.update_fields(user_id, update)
        logger.info("%s updated user %s (%s)", actor.email, user.email, ", ".join(sorted(update)))
        return self._users.get_by_id(user_id)

    def deactivate_user(self, actor: AuthUser, user_id: str) -> None:
        """Soft delete: accounts are deactivated, never removed."""
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can deactivate accounts")
        if actor.user_id == user_id:
            raise ValidationError("You cannot deactivate your own account")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not self._users.set_active(user_id, is_active=False):
            raise ValidationError("Failed to deactivate user")
        logger.info("%s deactivated user %s", actor.email, user.email)
