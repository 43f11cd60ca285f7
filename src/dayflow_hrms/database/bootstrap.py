from __future__ import annotations

import logging
from datetime import datetime

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from werkzeug.security import generate_password_hash

from ..core.constants import DEFAULT_COMPANY, DEFAULT_LEAVE_BALANCE
from ..core.enums import Role
from ..users.id_generator import EmployeeCodeGenerator
from ..users.mongo_user_repository import MongoCounterRepository

logger = logging.getLogger(__name__)

# (first_name, last_name, email, password, role, department, designation, salary)
DEMO_USERS = [
    ("Admin", "User", "admin@workzen.com", "admin123", Role.ADMIN, "IT", "System Administrator", 120000),
    ("John", "Doe", "employee1@workzen.com", "emp123", Role.EMPLOYEE, "Engineering", "Software Developer", 95000),
    ("Sarah", "Johnson", "hr1@workzen.com", "hr1234", Role.HR_OFFICER, "HR", "HR Manager", 85000),
    ("Mike", "Payroll", "payroll1@workzen.com", "pay123", Role.PAYROLL_OFFICER, "Finance", "Payroll Manager", 90000),
]


def ensure_indexes(db: Database) -> None:
    """Create collection indexes (idempotent)."""

    db["users"].create_index([("email", ASCENDING)], unique=True)
    db["users"].create_index([("employee_code", ASCENDING)], unique=True, sparse=True)
    db["users"].create_index([("department", ASCENDING), ("is_active", ASCENDING)])

    db["attendance"].create_index([("user_id", ASCENDING), ("work_date", ASCENDING)], unique=True)
    db["attendance"].create_index([("work_date", DESCENDING)])

    db["leaves"].create_index([("user_id", ASCENDING), ("start_date", ASCENDING)])
    db["leaves"].create_index([("status", ASCENDING)])

    db["payrolls"].create_index(
        [("user_id", ASCENDING), ("period_start", ASCENDING), ("period_end", ASCENDING)],
        unique=True,
    )

    db["reports"].create_index([("report_type", ASCENDING), ("generated_at", DESCENDING)])
    db["counters"].create_index([("key", ASCENDING)], unique=True)


def ensure_demo_users(db: Database) -> None:
    """Ensure one demo account per role exists with a known password.

    Existing accounts keep their employee code; the password and role are reset.
    """

    users = db["users"]
    codes = EmployeeCodeGenerator(MongoCounterRepository(db))
    now = datetime.now()

    for first_name, last_name, email, password, role, department, designation, salary in DEMO_USERS:
        existing = users.find_one({"email": email}, projection={"employee_code": 1})
        fields = {
            "first_name": first_name,
            "last_name": last_name,
            "password_hash": generate_password_hash(password),
            "role": role.value,
            "department": department,
            "designation": designation,
            "salary": float(salary),
            "is_active": True,
            "login_attempts": 0,
            "lock_until": None,
            "updated_at": now,
        }
        if existing:
            users.update_one({"_id": existing["_id"]}, {"$set": fields})
            continue

        users.insert_one(
            {
                **fields,
                "email": email,
                "employee_code": codes.generate(
                    company=DEFAULT_COMPANY, first_name=first_name, last_name=last_name, join_date=now.date()
                ),
                "company": DEFAULT_COMPANY,
                "phone": None,
                "leave_balance": dict(DEFAULT_LEAVE_BALANCE),
                "last_login": None,
                "join_date": datetime.combine(now.date(), datetime.min.time()),
                "created_at": now,
            }
        )
        logger.info("Seeded demo %s account %s", role.value, email)


def list_collections(db: Database) -> list[str]:
    return sorted(db.list_collection_names())
