from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Sequence

from pymongo import ReturnDocument
from pymongo.database import Database

from ..core.constants import DEFAULT_COMPANY
from ..core.enums import Role
from ..database.mongo_base import as_date, as_datetime, id_str, to_object_id
from .model import NewUser, User, UserFilter, default_leave_balance
from .repository import CounterRepository, UserRepository

USERS = "users"
COUNTERS = "counters"

_UPDATABLE = {
    "first_name",
    "last_name",
    "email",
    "password_hash",
    "role",
    "department",
    "designation",
    "phone",
    "salary",
    "leave_balance",
    "is_active",
}


def _split_name(name: str) -> tuple[str, str]:
    parts = (name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def user_from_doc(doc: dict) -> User:
    """Adapter: normalize a user document into the domain entity.

    Older documents carry a single 'name' field instead of first/last names.
    """
    first_name = doc.get("first_name")
    last_name = doc.get("last_name")
    if not first_name and not last_name:
        first_name, last_name = _split_name(doc.get("name", ""))

    balance = default_leave_balance()
    balance.update(doc.get("leave_balance") or {})

    return User(
        user_id=str(doc["_id"]),
        employee_code=doc.get("employee_code"),
        first_name=first_name or "",
        last_name=last_name or "",
        email=doc.get("email", ""),
        password_hash=doc.get("password_hash", ""),
        role=Role(doc.get("role", Role.EMPLOYEE.value)),
        company=doc.get("company") or DEFAULT_COMPANY,
        department=doc.get("department"),
        designation=doc.get("designation"),
        phone=doc.get("phone"),
        salary=float(doc.get("salary") or 0),
        leave_balance=balance,
        is_active=bool(doc.get("is_active", True)),
        login_attempts=int(doc.get("login_attempts") or 0),
        lock_until=doc.get("lock_until"),
        last_login=doc.get("last_login"),
        join_date=as_date(doc.get("join_date")),
        created_at=doc.get("created_at"),
    )


class MongoUserRepository(UserRepository):
    def __init__(self, db: Database):
        self._users = db[USERS]

    def get_by_id(self, user_id: str) -> Optional[User]:
        doc = self._users.find_one({"_id": to_object_id(user_id, field_name="user id")})
        return user_from_doc(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[User]:
        doc = self._users.find_one({"email": (email or "").strip().lower()})
        return user_from_doc(doc) if doc else None

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        doc = self._users.find_one({"employee_code": (employee_code or "").strip().upper()})
        return user_from_doc(doc) if doc else None

    def create_user(self, new_user: NewUser) -> str:
        now = datetime.now()
        result = self._users.insert_one(
            {
                "employee_code": new_user.employee_code,
                "first_name": new_user.first_name,
                "last_name": new_user.last_name,
                "email": new_user.email,
                "password_hash": new_user.password_hash,
                "role": new_user.role.value,
                "company": new_user.company,
                "department": new_user.department,
                "designation": new_user.designation,
                "phone": new_user.phone,
                "salary": float(new_user.salary),
                "leave_balance": dict(new_user.leave_balance),
                "is_active": True,
                "login_attempts": 0,
                "lock_until": None,
                "last_login": None,
                "join_date": as_datetime(new_user.join_date),
                "created_at": now,
                "updated_at": now,
            }
        )
        return id_str(result.inserted_id)

    def update_fields(self, user_id: str, fields: dict) -> bool:
        update = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if "role" in update and isinstance(update["role"], Role):
            update["role"] = update["role"].value
        if not update:
            return False
        update["updated_at"] = datetime.now()
        result = self._users.update_one({"_id": to_object_id(user_id)}, {"$set": update})
        return result.matched_count == 1

    def set_active(self, user_id: str, *, is_active: bool) -> bool:
        result = self._users.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"is_active": bool(is_active), "updated_at": datetime.now()}},
        )
        return result.matched_count == 1

    def increment_login_attempts(self, user_id: str) -> int:
        doc = self._users.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$inc": {"login_attempts": 1}},
            projection={"login_attempts": 1},
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["login_attempts"]) if doc else 0

    def lock_account(self, user_id: str, *, until: datetime) -> bool:
        result = self._users.update_one({"_id": to_object_id(user_id)}, {"$set": {"lock_until": until}})
        return result.matched_count == 1

    def reset_login_state(self, user_id: str, *, last_login: Optional[datetime] = None) -> bool:
        update: dict = {"login_attempts": 0, "lock_until": None}
        if last_login is not None:
            update["last_login"] = last_login
        result = self._users.update_one({"_id": to_object_id(user_id)}, {"$set": update})
        return result.matched_count == 1

    def adjust_leave_balance(self, user_id: str, *, bucket: str, delta: float) -> bool:
        result = self._users.update_one(
            {"_id": to_object_id(user_id)},
            {"$inc": {f"leave_balance.{bucket}": delta}},
        )
        return result.matched_count == 1

    def list_users(self, filters: UserFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[User], int]:
        query: dict = {}
        if filters.role is not None:
            query["role"] = filters.role.value
        if filters.department:
            query["department"] = filters.department
        if filters.is_active is not None:
            query["is_active"] = filters.is_active
        if filters.search:
            pattern = re.compile(re.escape(filters.search.strip()), re.IGNORECASE)
            query["$or"] = [
                {"first_name": pattern},
                {"last_name": pattern},
                {"name": pattern},
                {"email": pattern},
                {"employee_code": pattern},
            ]

        total = self._users.count_documents(query)
        cursor = self._users.find(query).sort("created_at", -1).skip(int(skip))
        if limit:
            cursor = cursor.limit(int(limit))
        return [user_from_doc(d) for d in cursor], total

    def list_active(self) -> Sequence[User]:
        return [user_from_doc(d) for d in self._users.find({"is_active": True}).sort("employee_code", 1)]


class MongoCounterRepository(CounterRepository):
    def __init__(self, db: Database):
        self._counters = db[COUNTERS]

    def next_sequence(self, key: str) -> int:
        doc = self._counters.find_one_and_update(
            {"key": key},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])
