from datetime import date, timedelta

import pytest

from dayflow_hrms.core.enums import ReportType, Role
from dayflow_hrms.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from dayflow_hrms.reports.model import ReportFilters


def _seed_attendance(container, users, start):
    for offset, user in enumerate(users):
        container.attendance_service.check_in(user.user_id, now=start)
        container.attendance_service.check_out(user.user_id, now=start + timedelta(hours=8 + offset))


def test_attendance_report_summary_and_rows(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER, department="HR"))
    a = make_user(first_name="Ana", department="Engineering")
    b = make_user(first_name="Ben", department="Engineering")
    _seed_attendance(container, [a, b], fixed_now)

    report = container.report_service.generate(
        hr,
        "attendance",
        filters=ReportFilters(start=date(2025, 3, 1), end=date(2025, 3, 31), department="Engineering"),
        now=fixed_now,
    )

    assert report.report_type == ReportType.ATTENDANCE
    assert report.summary["total_records"] == 2
    assert report.summary["present"] == 2
    assert report.summary["attendance_rate"] == 100.0
    assert report.summary["average_work_hours"] == 8.5
    assert report.record_count == 2
    assert {row["employee_name"] for row in report.data} == {"Ana User", "Ben User"}
    assert report.generated_by == hr.user_id


def test_payroll_report_groups_by_department(container, make_user, as_actor):
    officer = as_actor(make_user(role=Role.PAYROLL_OFFICER, department="Finance"))
    e1 = make_user(department="Sales", salary=50000)
    e2 = make_user(department="Sales", salary=50000)
    for e in (e1, e2):
        container.payroll_service.generate(officer, employee_id=e.user_id, start=date(2025, 3, 1), end=date(2025, 3, 31))

    report = container.report_service.generate(officer, "payroll-summary")

    assert report.summary["count"] == 2
    assert report.summary["total_net"] == 126000
    assert report.summary["by_department"]["Sales"]["count"] == 2


def test_employee_report_counts_headcount(container, make_user, as_actor):
    admin = as_actor(make_user(role=Role.ADMIN, department="HR"))
    make_user(department="Sales")
    make_user(department="Sales", role=Role.PAYROLL_OFFICER)

    report = container.report_service.generate(admin, ReportType.EMPLOYEE, filters=ReportFilters(department="Sales"))

    assert report.summary["headcount"] == 2
    assert report.summary["by_role"] == {"Employee": 1, "Payroll Officer": 1}


def test_role_restrictions(container, make_user, as_actor):
    officer = as_actor(make_user(role=Role.PAYROLL_OFFICER))
    employee = as_actor(make_user())

    with pytest.raises(AuthorizationError):
        container.report_service.generate(officer, "attendance")
    with pytest.raises(AuthorizationError):
        container.report_service.list_reports(employee)
    with pytest.raises(ValidationError):
        container.report_service.generate(officer, "gossip")


def test_reading_a_report_counts_access(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    report = container.report_service.generate(hr, "leave")

    container.report_service.get_report(hr, report.report_id, now=fixed_now)
    seen = container.report_service.get_report(hr, report.report_id, now=fixed_now)

    assert seen.access_count == 2
    assert seen.last_accessed_at == fixed_now


def test_list_is_filtered_to_visible_types(container, make_user, as_actor):
    admin = as_actor(make_user(role=Role.ADMIN))
    officer = as_actor(make_user(role=Role.PAYROLL_OFFICER))
    container.report_service.generate(admin, "attendance")
    container.report_service.generate(admin, "payroll-summary")

    visible = container.report_service.list_reports(officer)

    assert [r.report_type for r in visible] == [ReportType.PAYROLL_SUMMARY]
    with pytest.raises(AuthorizationError):
        container.report_service.list_reports(officer, report_type="attendance")


def test_export_columns_cover_all_rows(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    employee = make_user()
    _seed_attendance(container, [employee], fixed_now)
    report = container.report_service.generate(hr, "attendance")

    exported, fieldnames = container.report_service.export_rows(hr, report.report_id)

    assert exported.report_id == report.report_id
    assert fieldnames[:2] == ["date", "employee_id"]
    assert "work_hours" in fieldnames


def test_delete_is_admin_only(container, make_user, as_actor):
    admin = as_actor(make_user(role=Role.ADMIN))
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    report = container.report_service.generate(hr, "leave")

    with pytest.raises(AuthorizationError):
        container.report_service.delete_report(hr, report.report_id)
    container.report_service.delete_report(admin, report.report_id)
    with pytest.raises(NotFoundError):
        container.report_service.get_report(admin, report.report_id)
