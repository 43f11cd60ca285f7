from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from ..attendance.model import AttendanceFilter, AttendanceSummary
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, now_local
from ..core.enums import LeaveStatus, PaymentStatus, Role, STAFF_ROLES
from ..core.exceptions import AuthorizationError
from ..leaves.model import LeaveFilter
from ..leaves.repository import LeaveRepository
from ..payroll.model import PayrollFilter
from ..payroll.repository import PayrollRepository
from ..users.model import AuthUser, User, UserFilter
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10
PAYROLL_DUE_DAYS = 7
LOW_ATTENDANCE_PERCENT = 80.0

_SETTLED_PAYMENTS = {PaymentStatus.PAID, PaymentStatus.CANCELLED}


class DashboardService:
    """Read-only aggregates behind the role dashboards."""

    def __init__(
        self,
        users: UserRepository,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        payrolls: PayrollRepository,
    ):
        self._users = users
        self._attendance = attendance
        self._leaves = leaves
        self._payrolls = payrolls

    def _department_headcount(self, active: list[User]) -> list[dict]:
        counts = Counter(u.department or "Unassigned" for u in active)
        return [
            {"department": dept, "count": count}
            for dept, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]

    def _recent_activities(self, user_id: Optional[str]) -> list[dict]:
        people: dict[str, Optional[User]] = {}

        def person(uid: str) -> dict:
            if uid not in people:
                people[uid] = self._users.get_by_id(uid)
            user = people[uid]
            return {
                "employee_id": uid,
                "employee_name": user.full_name if user else None,
                "employee_code": user.employee_code if user else None,
            }

        records, _ = self._attendance.list_records(AttendanceFilter(user_id=user_id), limit=RECENT_ACTIVITY_LIMIT)
        leaves, _ = self._leaves.list_requests(LeaveFilter(user_id=user_id), limit=RECENT_ACTIVITY_LIMIT)

        activities = [
            {
                "type": "attendance",
                "action": "checked out" if r.checked_out else "checked in",
                **person(r.user_id),
                "timestamp": (r.check_out or r.check_in).time,
                "details": "Check-out" if r.checked_out else "Check-in",
            }
            for r in records
            if r.check_in is not None
        ]
        activities += [
            {
                "type": "leave",
                "action": "applied for leave",
                **person(i.user_id),
                "timestamp": i.applied_at,
                "details": f"{i.leave_type.value} leave",
            }
            for i in leaves
            if i.applied_at is not None
        ]
        activities.sort(key=lambda a: a["timestamp"], reverse=True)
        return [
            {**a, "timestamp": a["timestamp"].isoformat()}
            for a in activities[:RECENT_ACTIVITY_LIMIT]
        ]

    def overview(self, actor: AuthUser, *, now: Optional[datetime] = None) -> dict:
        """Month-to-date figures; employees get the same view limited to themselves."""
        now = now or now_local()
        first, last = month_bounds(now.year, now.month)
        scoped_id = None if actor.role in STAFF_ROLES else actor.user_id

        attendance = AttendanceSummary.from_records(
            self._attendance.find_all(AttendanceFilter(user_id=scoped_id, start=first, end=last))
        )

        leave: dict[str, dict] = {}
        for item in self._leaves.find_all(LeaveFilter(user_id=scoped_id, start=first, end=last)):
            if not first <= item.start_date <= last:
                continue
            bucket = leave.setdefault(item.status.value, {"count": 0, "total_days": 0.0})
            bucket["count"] += 1
            bucket["total_days"] += item.duration

        overview = {
            "month": first.strftime("%Y-%m"),
            "attendance": {
                "total_records": attendance.total_days,
                "present": attendance.present_days,
                "absent": attendance.absent_days,
                "late": attendance.late_days,
            },
            "leave": leave,
            "recent_activities": self._recent_activities(scoped_id),
        }
        if scoped_id is None:
            active = list(self._users.list_active())
            overview["employees"] = {"total": len(active), "departments": self._department_headcount(active)}
        return overview

    def alerts(self, actor: AuthUser, *, now: Optional[datetime] = None) -> list[dict]:
        if actor.role not in STAFF_ROLES:
            raise AuthorizationError("You do not have permission to view alerts")
        now = now or now_local()
        today = now.date()
        alerts: list[dict] = []

        _, pending = self._leaves.list_requests(LeaveFilter(status=LeaveStatus.PENDING), limit=1)
        if pending:
            alerts.append(
                {
                    "type": "warning",
                    "title": "Pending Leave Approvals",
                    "message": f"{pending} leave application{'s' if pending > 1 else ''} awaiting approval",
                    "action": "Review Leaves",
                    "link": "/leaves",
                }
            )

        due_by = today + timedelta(days=PAYROLL_DUE_DAYS)
        due = [
            r
            for r in self._payrolls.find_all(PayrollFilter())
            if today <= r.pay_date <= due_by and r.payment_status not in _SETTLED_PAYMENTS
        ]
        if due:
            alerts.append(
                {
                    "type": "info",
                    "title": "Upcoming Payroll",
                    "message": f"{len(due)} payroll{'s' if len(due) > 1 else ''} due within {PAYROLL_DUE_DAYS} days",
                    "action": "Process Payroll",
                    "link": "/payroll",
                }
            )

        checked_in = len(self._attendance.find_all(AttendanceFilter(start=today, end=today)))
        headcount = len(self._users.list_active())
        rate = checked_in * 100 / headcount if headcount else 0.0
        if checked_in and rate < LOW_ATTENDANCE_PERCENT:
            alerts.append(
                {
                    "type": "error",
                    "title": "Low Attendance Today",
                    "message": f"Only {rate:.1f}% attendance recorded today",
                    "action": "View Attendance",
                    "link": "/attendance",
                }
            )
        return alerts

    def system_summary(self, actor: AuthUser, *, now: Optional[datetime] = None) -> dict:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can view the system summary")
        today = (now or now_local()).date()

        _, total_users = self._users.list_users(UserFilter(), limit=1)
        active = list(self._users.list_active())
        _, total_attendance = self._attendance.list_records(AttendanceFilter(), limit=1)
        _, today_attendance = self._attendance.list_records(AttendanceFilter(start=today, end=today), limit=1)
        _, pending_leaves = self._leaves.list_requests(LeaveFilter(status=LeaveStatus.PENDING), limit=1)
        _, total_payroll = self._payrolls.list_records(PayrollFilter(), limit=1)

        summary = {
            "total_users": total_users,
            "active_users": len(active),
            "total_attendance": total_attendance,
            "today_attendance": today_attendance,
            "pending_leaves": pending_leaves,
            "total_payroll": total_payroll,
            "departments": self._department_headcount([u for u in active if u.department]),
        }
        logger.debug("System summary for %s: %s", actor.email, summary)
        return summary
