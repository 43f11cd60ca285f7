from __future__ import annotations

from dataclasses import dataclass

from pymongo.database import Database

from .attendance.mongo_attendance_repository import MongoAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .dashboard.service import DashboardService
from .leaves.mongo_leave_repository import MongoLeaveRepository
from .leaves.repository import LeaveRepository
from .leaves.service import LeaveService
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.mongo_payroll_repository import MongoPayrollRepository
from .payroll.repository import PayrollRepository
from .payroll.service import PayrollService
from .reports.mongo_report_repository import MongoReportRepository
from .reports.repository import ReportRepository
from .reports.service import ReportService
from .users.id_generator import EmployeeCodeGenerator
from .users.mongo_user_repository import MongoCounterRepository, MongoUserRepository
from .users.repository import CounterRepository, UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    counters_repo: CounterRepository
    attendance_repo: AttendanceRepository
    leaves_repo: LeaveRepository
    payrolls_repo: PayrollRepository
    reports_repo: ReportRepository

    auth_service: AuthService
    user_service: UserService
    attendance_service: AttendanceService
    leave_service: LeaveService
    payroll_service: PayrollService
    report_service: ReportService
    dashboard_service: DashboardService


def wire_container(
    *,
    users_repo: UserRepository,
    counters_repo: CounterRepository,
    attendance_repo: AttendanceRepository,
    leaves_repo: LeaveRepository,
    payrolls_repo: PayrollRepository,
    reports_repo: ReportRepository,
    pf_deducted_from_net: bool = False,
    **auth_options,
) -> Container:
    """Build services over any set of repositories (Mongo in production, in-memory in tests)."""

    codes = EmployeeCodeGenerator(counters_repo)
    auth_service = AuthService(users_repo, codes, **auth_options)
    user_service = UserService(users_repo, codes)
    attendance_service = AttendanceService(attendance_repo, users_repo)
    leave_service = LeaveService(leaves_repo, users_repo)
    payroll_service = PayrollService(
        payrolls_repo,
        users_repo,
        attendance_repo,
        calculator=StandardPayrollCalculator(deduct_pf=pf_deducted_from_net),
    )
    report_service = ReportService(reports_repo, users_repo, attendance_repo, leaves_repo, payrolls_repo)
    dashboard_service = DashboardService(users_repo, attendance_repo, leaves_repo, payrolls_repo)

    return Container(
        users_repo=users_repo,
        counters_repo=counters_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        payrolls_repo=payrolls_repo,
        reports_repo=reports_repo,
        auth_service=auth_service,
        user_service=user_service,
        attendance_service=attendance_service,
        leave_service=leave_service,
        payroll_service=payroll_service,
        report_service=report_service,
        dashboard_service=dashboard_service,
    )


def build_container(*, db: Database, pf_deducted_from_net: bool = False) -> Container:
    return wire_container(
        users_repo=MongoUserRepository(db),
        counters_repo=MongoCounterRepository(db),
        attendance_repo=MongoAttendanceRepository(db),
        leaves_repo=MongoLeaveRepository(db),
        payrolls_repo=MongoPayrollRepository(db),
        reports_repo=MongoReportRepository(db),
        pf_deducted_from_net=pf_deducted_from_net,
    )
