from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import date, datetime
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from dayflow_hrms.attendance.model import AttendanceFilter, AttendanceRecord
from dayflow_hrms.container import wire_container
from dayflow_hrms.core.enums import LeaveStatus, PaymentStatus, Role
from dayflow_hrms.core.exceptions import ValidationError
from dayflow_hrms.leaves.model import LeaveFilter, LeaveRequest
from dayflow_hrms.payroll.model import PayrollFilter, PayrollRecord
from dayflow_hrms.reports.model import Report
from dayflow_hrms.users.model import AuthUser, NewUser, User, UserFilter

_ids = itertools.count(1)


def _new_id(prefix: str) -> str:
    return f"{prefix}{next(_ids)}"


def _in_range(value: date, start: Optional[date], end: Optional[date]) -> bool:
    return (start is None or value >= start) and (end is None or value <= end)


class InMemoryUsers:
    def __init__(self):
        self.by_id: dict[str, User] = {}

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.by_id.values() if u.email == email.lower()), None)

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        return next((u for u in self.by_id.values() if u.employee_code == employee_code.upper()), None)

    def create_user(self, new_user: NewUser) -> str:
        user_id = _new_id("u")
        self.by_id[user_id] = User(
            user_id=user_id,
            employee_code=new_user.employee_code,
            first_name=new_user.first_name,
            last_name=new_user.last_name,
            email=new_user.email,
            password_hash=new_user.password_hash,
            role=new_user.role,
            company=new_user.company,
            department=new_user.department,
            designation=new_user.designation,
            phone=new_user.phone,
            salary=new_user.salary,
            leave_balance=dict(new_user.leave_balance),
            join_date=new_user.join_date,
        )
        return user_id

    def update_fields(self, user_id: str, fields: dict) -> bool:
        if user_id not in self.by_id:
            return False
        self.by_id[user_id] = replace(self.by_id[user_id], **fields)
        return True

    def set_active(self, user_id: str, *, is_active: bool) -> bool:
        return self.update_fields(user_id, {"is_active": is_active})

    def increment_login_attempts(self, user_id: str) -> int:
        user = self.by_id[user_id]
        self.by_id[user_id] = replace(user, login_attempts=user.login_attempts + 1)
        return user.login_attempts + 1

    def lock_account(self, user_id: str, *, until: datetime) -> bool:
        return self.update_fields(user_id, {"lock_until": until})

    def reset_login_state(self, user_id: str, *, last_login: Optional[datetime] = None) -> bool:
        fields = {"login_attempts": 0, "lock_until": None}
        if last_login is not None:
            fields["last_login"] = last_login
        return self.update_fields(user_id, fields)

    def adjust_leave_balance(self, user_id: str, *, bucket: str, delta: float) -> bool:
        user = self.by_id[user_id]
        balance = dict(user.leave_balance)
        balance[bucket] = balance.get(bucket, 0) + delta
        return self.update_fields(user_id, {"leave_balance": balance})

    def list_users(self, filters: UserFilter, *, skip: int = 0, limit: int = 0):
        items = list(self.by_id.values())
        if filters.role is not None:
            items = [u for u in items if u.role == filters.role]
        if filters.department:
            items = [u for u in items if u.department == filters.department]
        if filters.is_active is not None:
            items = [u for u in items if u.is_active == filters.is_active]
        if filters.search:
            needle = filters.search.lower()
            items = [
                u
                for u in items
                if needle in u.full_name.lower() or needle in u.email or needle in (u.employee_code or "").lower()
            ]
        total = len(items)
        items = items[skip:]
        return (items[:limit] if limit else items), total

    def list_active(self):
        return [u for u in self.by_id.values() if u.is_active]


class InMemoryCounters:
    def __init__(self):
        self.values: dict[str, int] = {}

    def next_sequence(self, key: str) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]


class InMemoryAttendance:
    def __init__(self):
        self.by_id: dict[str, AttendanceRecord] = {}

    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        return self.by_id.get(attendance_id)

    def get_for_user_and_date(self, user_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return next((r for r in self.by_id.values() if r.user_id == user_id and r.work_date == work_date), None)

    def create_checkin(self, *, user_id, work_date, check_in, status, notes=None) -> str:
        if self.get_for_user_and_date(user_id, work_date):
            raise ValidationError("Already checked in for this date")
        attendance_id = _new_id("a")
        self.by_id[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            work_date=work_date,
            check_in=check_in,
            status=status,
            notes=notes,
        )
        return attendance_id

    def update_checkout(self, *, attendance_id, check_out, hours) -> bool:
        record = self.by_id.get(attendance_id)
        if not record or record.check_out is not None:
            return False
        self.by_id[attendance_id] = replace(
            record,
            check_out=check_out,
            work_hours=hours.work_hours,
            overtime_hours=hours.overtime_hours,
        )
        return True

    def update_fields(self, attendance_id: str, fields: dict) -> bool:
        if attendance_id not in self.by_id:
            return False
        self.by_id[attendance_id] = replace(self.by_id[attendance_id], **fields)
        return True

    def _match(self, filters: AttendanceFilter):
        items = list(self.by_id.values())
        if filters.user_id:
            items = [r for r in items if r.user_id == filters.user_id]
        elif filters.user_ids is not None:
            items = [r for r in items if r.user_id in set(filters.user_ids)]
        if filters.status is not None:
            items = [r for r in items if r.status == filters.status]
        return [r for r in items if _in_range(r.work_date, filters.start, filters.end)]

    def list_records(self, filters, *, skip=0, limit=0, sort_by="work_date", descending=True):
        items = sorted(self._match(filters), key=lambda r: r.work_date, reverse=descending)
        total = len(items)
        items = items[skip:]
        return (items[:limit] if limit else items), total

    def find_all(self, filters):
        return sorted(self._match(filters), key=lambda r: r.work_date)


class InMemoryLeaves:
    def __init__(self):
        self.by_id: dict[str, LeaveRequest] = {}

    def create(self, new_leave) -> str:
        leave_id = _new_id("l")
        self.by_id[leave_id] = LeaveRequest(
            leave_id=leave_id,
            user_id=new_leave.user_id,
            leave_type=new_leave.leave_type,
            start_date=new_leave.start_date,
            end_date=new_leave.end_date,
            duration=new_leave.duration,
            reason=new_leave.reason,
            is_half_day=new_leave.is_half_day,
            half_day_type=new_leave.half_day_type,
            applied_at=new_leave.applied_at,
        )
        return leave_id

    def get_by_id(self, leave_id: str) -> Optional[LeaveRequest]:
        return self.by_id.get(leave_id)

    def _match(self, filters: LeaveFilter):
        items = list(self.by_id.values())
        if filters.user_id:
            items = [i for i in items if i.user_id == filters.user_id]
        if filters.status is not None:
            items = [i for i in items if i.status == filters.status]
        if filters.leave_type is not None:
            items = [i for i in items if i.leave_type == filters.leave_type]
        if filters.end is not None:
            items = [i for i in items if i.start_date <= filters.end]
        if filters.start is not None:
            items = [i for i in items if i.end_date >= filters.start]
        return items

    def list_requests(self, filters, *, skip=0, limit=0):
        items = self._match(filters)
        total = len(items)
        items = items[skip:]
        return (items[:limit] if limit else items), total

    def find_all(self, filters):
        return sorted(self._match(filters), key=lambda i: i.start_date)

    def update_pending(self, leave_id: str, fields: dict) -> bool:
        leave = self.by_id.get(leave_id)
        if not leave or leave.status != LeaveStatus.PENDING:
            return False
        self.by_id[leave_id] = replace(leave, **fields)
        return True

    def decide(self, *, leave_id, status, decided_by, decided_at, rejection_reason=None) -> bool:
        leave = self.by_id.get(leave_id)
        if not leave or leave.status != LeaveStatus.PENDING:
            return False
        self.by_id[leave_id] = replace(
            leave,
            status=status,
            decided_by=decided_by,
            decided_at=decided_at,
            rejection_reason=rejection_reason,
        )
        return True

    def delete(self, leave_id: str) -> bool:
        return self.by_id.pop(leave_id, None) is not None


class InMemoryPayrolls:
    def __init__(self):
        self.by_id: dict[str, PayrollRecord] = {}

    def exists_for_period(self, user_id, *, start, end) -> bool:
        return any(
            r.user_id == user_id and r.period_start == start and r.period_end == end for r in self.by_id.values()
        )

    def create(self, new_payroll) -> str:
        if self.exists_for_period(new_payroll.user_id, start=new_payroll.period_start, end=new_payroll.period_end):
            raise ValidationError("Payroll already processed for this period")
        payroll_id = _new_id("p")
        self.by_id[payroll_id] = PayrollRecord(
            payroll_id=payroll_id,
            user_id=new_payroll.user_id,
            period_start=new_payroll.period_start,
            period_end=new_payroll.period_end,
            pay_date=new_payroll.period_end,
            breakdown=new_payroll.breakdown,
            attendance=new_payroll.attendance,
            payment_status=PaymentStatus.PROCESSING,
            notes=new_payroll.notes,
            processed_by=new_payroll.processed_by,
            created_at=new_payroll.created_at,
        )
        return payroll_id

    def get_by_id(self, payroll_id: str) -> Optional[PayrollRecord]:
        return self.by_id.get(payroll_id)

    def _match(self, filters: PayrollFilter):
        items = list(self.by_id.values())
        if filters.user_id:
            items = [r for r in items if r.user_id == filters.user_id]
        if filters.payment_status is not None:
            items = [r for r in items if r.payment_status == filters.payment_status]
        return [r for r in items if _in_range(r.period_start, filters.period_from, filters.period_to)]

    def list_records(self, filters, *, skip=0, limit=0):
        items = sorted(self._match(filters), key=lambda r: r.period_start, reverse=True)
        total = len(items)
        items = items[skip:]
        return (items[:limit] if limit else items), total

    def find_all(self, filters):
        return sorted(self._match(filters), key=lambda r: r.period_start, reverse=True)

    def update_fields(self, payroll_id: str, fields: dict) -> bool:
        if payroll_id not in self.by_id:
            return False
        self.by_id[payroll_id] = replace(self.by_id[payroll_id], **fields)
        return True

    def delete(self, payroll_id: str) -> bool:
        return self.by_id.pop(payroll_id, None) is not None


class InMemoryReports:
    def __init__(self):
        self.by_id: dict[str, Report] = {}

    def create(self, new_report) -> str:
        report_id = _new_id("r")
        self.by_id[report_id] = Report(
            report_id=report_id,
            name=new_report.name,
            report_type=new_report.report_type,
            filters=dict(new_report.filters),
            summary=dict(new_report.summary),
            data=list(new_report.data),
            generated_by=new_report.generated_by,
            generated_at=new_report.generated_at,
            record_count=len(new_report.data),
        )
        return report_id

    def get_by_id(self, report_id: str) -> Optional[Report]:
        return self.by_id.get(report_id)

    def list_reports(self, *, report_types=None):
        items = list(self.by_id.values())
        if report_types is not None:
            items = [r for r in items if r.report_type in report_types]
        return items

    def record_access(self, report_id: str, *, at: datetime) -> bool:
        report = self.by_id.get(report_id)
        if not report:
            return False
        self.by_id[report_id] = replace(report, access_count=report.access_count + 1, last_accessed_at=at)
        return True

    def delete(self, report_id: str) -> bool:
        return self.by_id.pop(report_id, None) is not None


@pytest.fixture
def fixed_now() -> datetime:
    # Monday
    return datetime(2025, 3, 3, 9, 0, 0)


@pytest.fixture
def repos():
    return SimpleNamespace(
        users=InMemoryUsers(),
        counters=InMemoryCounters(),
        attendance=InMemoryAttendance(),
        leaves=InMemoryLeaves(),
        payrolls=InMemoryPayrolls(),
        reports=InMemoryReports(),
    )


@pytest.fixture
def make_user(repos):
    """Create a user straight in the fake repository; password is 'secret123'."""

    def _make(
        *,
        role: Role = Role.EMPLOYEE,
        email: Optional[str] = None,
        first_name: str = "Test",
        last_name: str = "User",
        department: Optional[str] = "Engineering",
        salary: float = 50000,
        password: str = "secret123",
    ) -> User:
        seq = len(repos.users.by_id) + 1
        user_id = repos.users.create_user(
            NewUser(
                employee_code=f"DFTEUS2025{seq:04d}",
                first_name=first_name,
                last_name=last_name,
                email=email or f"user{seq}@example.com",
                password_hash=generate_password_hash(password),
                role=role,
                company="DAYFLOW",
                department=department,
                designation=None,
                phone=None,
                salary=salary,
                join_date=date(2025, 1, 1),
            )
        )
        return repos.users.get_by_id(user_id)

    return _make


@pytest.fixture
def as_actor():
    return AuthUser.from_user


@pytest.fixture
def container(repos):
    return wire_container(
        users_repo=repos.users,
        counters_repo=repos.counters,
        attendance_repo=repos.attendance,
        leaves_repo=repos.leaves,
        payrolls_repo=repos.payrolls,
        reports_repo=repos.reports,
        token_issuer=lambda user: f"token-{user.user_id}",
    )
