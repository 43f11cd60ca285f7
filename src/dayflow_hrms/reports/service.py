from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional, Sequence

from ..attendance.model import AttendanceFilter, AttendanceSummary
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.validators import require_choice, require_date_order
from ..core.enums import AttendanceStatus, LeaveStatus, ReportType, Role
from ..core.exceptions import AuthorizationError, NotFoundError
from ..leaves.model import LeaveFilter, LeaveSummary
from ..leaves.repository import LeaveRepository
from ..payroll.model import PayrollFilter, PayrollTotals
from ..payroll.repository import PayrollRepository
from ..users.model import AuthUser, User, UserFilter
from ..users.repository import UserRepository
from .model import NewReport, Report, ReportFilters
from .repository import ReportRepository

logger = logging.getLogger(__name__)

ALLOWED_ROLES = {
    ReportType.ATTENDANCE: frozenset({Role.ADMIN, Role.HR_OFFICER}),
    ReportType.LEAVE: frozenset({Role.ADMIN, Role.HR_OFFICER}),
    ReportType.EMPLOYEE: frozenset({Role.ADMIN, Role.HR_OFFICER}),
    ReportType.PAYROLL_SUMMARY: frozenset({Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER}),
}

_PRESENT_LIKE = {AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.HALF_DAY}


class ReportService:
    """Builds report artifacts from the other collections and keeps them."""

    def __init__(
        self,
        reports: ReportRepository,
        users: UserRepository,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        payrolls: PayrollRepository,
    ):
        self._reports = reports
        self._users = users
        self._attendance = attendance
        self._leaves = leaves
        self._payrolls = payrolls

    @staticmethod
    def _check_access(actor: AuthUser, report_type: ReportType) -> None:
        if actor.role not in ALLOWED_ROLES[report_type]:
            raise AuthorizationError(f"You do not have permission to access {report_type.value} reports")

    def visible_types(self, actor: AuthUser) -> list[ReportType]:
        return [t for t in ReportType if actor.role in ALLOWED_ROLES[t]]

    def _people(self, filters: ReportFilters) -> dict[str, User]:
        if filters.employee_id:
            user = self._users.get_by_id(filters.employee_id)
            return {user.user_id: user} if user else {}
        users, _ = self._users.list_users(UserFilter(department=filters.department))
        return {u.user_id: u for u in users}

    @staticmethod
    def _person_columns(user: Optional[User]) -> dict:
        return {
            "employee_code": user.employee_code if user else None,
            "employee_name": user.full_name if user else None,
            "department": user.department if user else None,
        }

    def _attendance_report(self, filters: ReportFilters) -> tuple[dict, list[dict]]:
        people = self._people(filters)
        status = require_choice(filters.status, AttendanceStatus, "status") if filters.status else None
        records = self._attendance.find_all(
            AttendanceFilter(user_ids=list(people), start=filters.start, end=filters.end, status=status)
        )
        summary = AttendanceSummary.from_records(records)
        attended = sum(1 for r in records if r.status in _PRESENT_LIKE)

        rows = [
            {
                "date": r.work_date.isoformat(),
                "employee_id": r.user_id,
                **self._person_columns(people.get(r.user_id)),
                "status": r.status.value,
                "check_in": r.check_in.time.strftime("%H:%M:%S") if r.check_in else None,
                "check_out": r.check_out.time.strftime("%H:%M:%S") if r.check_out else None,
                "work_hours": round(r.work_hours, 2),
                "overtime_hours": round(r.overtime_hours, 2),
            }
            for r in records
        ]
        return {
            "total_records": summary.total_days,
            "present": summary.present_days,
            "absent": summary.absent_days,
            "late": summary.late_days,
            "half_day": summary.half_days,
            "on_leave": summary.leave_days,
            "average_work_hours": round(summary.average_work_hours, 2),
            "attendance_rate": round(attended * 100 / summary.total_days, 2) if summary.total_days else 0.0,
        }, rows

    def _leave_report(self, filters: ReportFilters) -> tuple[dict, list[dict]]:
        people = self._people(filters)
        status = require_choice(filters.status, LeaveStatus, "status") if filters.status else None
        items = [
            i
            for i in self._leaves.find_all(LeaveFilter(status=status, start=filters.start, end=filters.end))
            if i.user_id in people
        ]
        summary = LeaveSummary.from_requests(items)

        by_type: dict[str, dict] = {}
        for item in items:
            bucket = by_type.setdefault(item.leave_type.value, {"count": 0, "days": 0.0})
            bucket["count"] += 1
            bucket["days"] += item.duration

        rows = [
            {
                "employee_id": i.user_id,
                **self._person_columns(people.get(i.user_id)),
                "leave_type": i.leave_type.value,
                "start_date": i.start_date.isoformat(),
                "end_date": i.end_date.isoformat(),
                "duration": i.duration,
                "status": i.status.value,
            }
            for i in items
        ]
        return {**summary.to_dict(), "by_type": by_type}, rows

    def _payroll_report(self, filters: ReportFilters) -> tuple[dict, list[dict]]:
        people = self._people(filters)
        records = [
            r
            for r in self._payrolls.find_all(PayrollFilter(period_from=filters.start, period_to=filters.end))
            if r.user_id in people
        ]
        totals = PayrollTotals.from_records(records)

        by_department: dict[str, dict] = defaultdict(lambda: {"count": 0, "gross": 0.0, "net": 0.0})
        for r in records:
            user = people.get(r.user_id)
            bucket = by_department[(user.department if user else None) or "Unassigned"]
            bucket["count"] += 1
            bucket["gross"] = round(bucket["gross"] + r.breakdown.gross, 2)
            bucket["net"] = round(bucket["net"] + r.breakdown.net_pay, 2)

        rows = [
            {
                "employee_id": r.user_id,
                **self._person_columns(people.get(r.user_id)),
                "period_start": r.period_start.isoformat(),
                "period_end": r.period_end.isoformat(),
                "basic": r.breakdown.basic,
                "gross": r.breakdown.gross,
                "deductions": r.breakdown.total_deductions,
                "net_pay": r.breakdown.net_pay,
                "payment_status": r.payment_status.value,
            }
            for r in records
        ]
        return {**totals.to_dict(), "by_department": dict(by_department)}, rows

    def _employee_report(self, filters: ReportFilters) -> tuple[dict, list[dict]]:
        users = list(self._people(filters).values())
        if filters.status:
            wanted = filters.status.lower() == "active"
            users = [u for u in users if u.is_active == wanted]

        by_department: dict[str, int] = defaultdict(int)
        by_role: dict[str, int] = defaultdict(int)
        for u in users:
            by_department[u.department or "Unassigned"] += 1
            by_role[u.role.value] += 1

        rows = [
            {
                "employee_id": u.user_id,
                **self._person_columns(u),
                "email": u.email,
                "role": u.role.value,
                "designation": u.designation,
                "salary": u.salary,
                "is_active": u.is_active,
                "join_date": u.join_date.isoformat() if u.join_date else None,
            }
            for u in users
        ]
        return {
            "headcount": len(users),
            "active": sum(1 for u in users if u.is_active),
            "by_department": dict(by_department),
            "by_role": dict(by_role),
            "total_salary": round(sum(u.salary for u in users), 2),
        }, rows

    def generate(
        self,
        actor: AuthUser,
        report_type,
        *,
        filters: Optional[ReportFilters] = None,
        name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Report:
        report_type = require_choice(report_type, ReportType, "report type")
        self._check_access(actor, report_type)
        filters = filters or ReportFilters()
        if filters.start and filters.end:
            require_date_order(filters.start, filters.end)
        now = now or now_local()

        builders = {
            ReportType.ATTENDANCE: self._attendance_report,
            ReportType.LEAVE: self._leave_report,
            ReportType.PAYROLL_SUMMARY: self._payroll_report,
            ReportType.EMPLOYEE: self._employee_report,
        }
        summary, rows = builders[report_type](filters)

        report_id = self._reports.create(
            NewReport(
                name=(name or "").strip() or f"{report_type.value} report {now:%Y-%m-%d %H:%M}",
                report_type=report_type,
                filters=filters.to_dict(),
                summary=summary,
                data=rows,
                generated_by=actor.user_id,
                generated_at=now,
            )
        )
        logger.info("%s generated %s report %s (%d rows)", actor.email, report_type.value, report_id, len(rows))
        return self._reports.get_by_id(report_id)

    def list_reports(self, actor: AuthUser, *, report_type=None) -> Sequence[Report]:
        types = self.visible_types(actor)
        if not types:
            raise AuthorizationError("You do not have permission to view reports")
        if report_type:
            wanted = require_choice(report_type, ReportType, "report type")
            self._check_access(actor, wanted)
            types = [wanted]
        return self._reports.list_reports(report_types=types)

    def get_report(self, actor: AuthUser, report_id: str, *, now: Optional[datetime] = None) -> Report:
        report = self._reports.get_by_id(report_id)
        if not report:
            raise NotFoundError("Report not found")
        self._check_access(actor, report.report_type)
        self._reports.record_access(report_id, at=now or now_local())
        return self._reports.get_by_id(report_id)

    def delete_report(self, actor: AuthUser, report_id: str) -> None:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can delete reports")
        if not self._reports.get_by_id(report_id):
            raise NotFoundError("Report not found")
        self._reports.delete(report_id)

    def export_rows(self, actor: AuthUser, report_id: str) -> tuple[Report, list[str]]:
        """Report plus the ordered CSV columns covering every row."""
        report = self.get_report(actor, report_id)
        fieldnames: list[str] = []
        for row in report.data:
            for key in row:
                if key not in fieldnames:
                    fieldnames.append(key)
        return report, fieldnames
