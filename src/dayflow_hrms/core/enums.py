from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "Admin"
    HR_OFFICER = "HR Officer"
    PAYROLL_OFFICER = "Payroll Officer"
    EMPLOYEE = "Employee"


# Roles that may see and act on other employees' records.
STAFF_ROLES = frozenset({Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER})

# Roles a user may pick for themselves at registration.
SELF_REGISTER_ROLES = frozenset({Role.EMPLOYEE, Role.HR_OFFICER, Role.PAYROLL_OFFICER})


class Department(str, Enum):
    HR = "HR"
    IT = "IT"
    FINANCE = "Finance"
    MARKETING = "Marketing"
    SALES = "Sales"
    OPERATIONS = "Operations"
    ENGINEERING = "Engineering"
    LEGAL = "Legal"


class AttendanceStatus(str, Enum):
    """Attendance status stored on each daily record."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half-day"
    ON_LEAVE = "on-leave"


class CheckMethod(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    BIOMETRIC = "biometric"
    MANUAL = "manual"


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    EMERGENCY = "emergency"
    UNPAID = "unpaid"
    OTHER = "other"


class LeaveStatus(str, Enum):
    """Leave workflow status. PENDING is the only non-terminal state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HalfDayType(str, Enum):
    FIRST_HALF = "first-half"
    SECOND_HALF = "second-half"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReportType(str, Enum):
    ATTENDANCE = "attendance"
    LEAVE = "leave"
    PAYROLL_SUMMARY = "payroll-summary"
    EMPLOYEE = "employee"
