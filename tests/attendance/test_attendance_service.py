from datetime import date, datetime, time, timedelta

import pytest

from dayflow_hrms.attendance.model import AttendanceFilter
from dayflow_hrms.core.enums import AttendanceStatus, CheckMethod, Role
from dayflow_hrms.core.exceptions import AuthorizationError, NotFoundError, ValidationError


def test_check_in_then_check_out_computes_hours(container, make_user, fixed_now):
    user = make_user()
    service = container.attendance_service

    record = service.check_in(user.user_id, now=fixed_now)
    assert record.work_date == fixed_now.date()
    assert record.status == AttendanceStatus.PRESENT
    assert not record.checked_out

    done = service.check_out(user.user_id, now=fixed_now + timedelta(hours=9))
    assert done.work_hours == pytest.approx(9.0)
    assert done.overtime_hours == pytest.approx(1.0)
    assert done.to_dict()["work_hours_formatted"] == "09:00:00"


def test_second_check_in_fails_and_keeps_first_record(container, repos, make_user, fixed_now):
    user = make_user()
    first = container.attendance_service.check_in(user.user_id, now=fixed_now)

    with pytest.raises(ValidationError, match="Already checked in today"):
        container.attendance_service.check_in(user.user_id, now=fixed_now + timedelta(minutes=5))

    assert len(repos.attendance.by_id) == 1
    assert repos.attendance.get_by_id(first.attendance_id).check_in.time == fixed_now


def test_check_out_without_check_in_creates_nothing(container, repos, make_user, fixed_now):
    user = make_user()

    with pytest.raises(NotFoundError, match="No check-in record found for today"):
        container.attendance_service.check_out(user.user_id, now=fixed_now)

    assert repos.attendance.by_id == {}


def test_second_check_out_fails(container, make_user, fixed_now):
    user = make_user()
    container.attendance_service.check_in(user.user_id, now=fixed_now)
    container.attendance_service.check_out(user.user_id, now=fixed_now + timedelta(hours=4))

    with pytest.raises(ValidationError, match="Already checked out today"):
        container.attendance_service.check_out(user.user_id, now=fixed_now + timedelta(hours=5))


def test_inactive_user_cannot_check_in(container, repos, make_user, fixed_now):
    user = make_user()
    repos.users.set_active(user.user_id, is_active=False)

    with pytest.raises(ValidationError):
        container.attendance_service.check_in(user.user_id, now=fixed_now)


def test_admin_check_in_is_manual_and_backdated(container, make_user, as_actor, fixed_now):
    admin = as_actor(make_user(role=Role.ADMIN))
    employee = make_user()

    record = container.attendance_service.admin_check_in(
        admin, employee.user_id, work_date=date(2025, 2, 28), check_in_time=time(8, 30), now=fixed_now
    )

    assert record.work_date == date(2025, 2, 28)
    assert record.check_in.time == datetime(2025, 2, 28, 8, 30)
    assert record.check_in.method == CheckMethod.MANUAL
    assert record.check_in.device_info.user_agent == "Admin Portal"
    assert record.check_in.device_info.platform == "admin"


def test_admin_check_in_without_time_uses_clock_on_date(container, make_user, as_actor, fixed_now):
    admin = as_actor(make_user(role=Role.ADMIN))
    employee = make_user()

    record = container.attendance_service.admin_check_in(
        admin, employee.user_id, work_date=date(2025, 2, 27), now=fixed_now
    )

    assert record.check_in.time == datetime(2025, 2, 27, 9, 0)


def test_admin_check_out_requires_existing_record(container, make_user, as_actor, fixed_now):
    admin = as_actor(make_user(role=Role.ADMIN))
    employee = make_user()

    with pytest.raises(NotFoundError):
        container.attendance_service.admin_check_out(admin, employee.user_id, now=fixed_now)

    container.attendance_service.admin_check_in(admin, employee.user_id, check_in_time=time(9, 0), now=fixed_now)
    record = container.attendance_service.admin_check_out(
        admin, employee.user_id, check_out_time=time(17, 30), now=fixed_now
    )
    assert record.work_hours == pytest.approx(8.5)
    assert record.check_out.method == CheckMethod.MANUAL


def test_admin_check_out_before_check_in_is_rejected(container, make_user, as_actor, fixed_now):
    admin = as_actor(make_user(role=Role.ADMIN))
    employee = make_user()
    container.attendance_service.admin_check_in(admin, employee.user_id, check_in_time=time(9, 0), now=fixed_now)

    with pytest.raises(ValidationError):
        container.attendance_service.admin_check_out(
            admin, employee.user_id, check_out_time=time(8, 0), now=fixed_now
        )


def test_only_admin_marks_attendance_for_others(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    employee = make_user()

    with pytest.raises(AuthorizationError):
        container.attendance_service.admin_check_in(hr, employee.user_id, now=fixed_now)


def test_employee_listing_is_scoped_to_self(container, make_user, as_actor, fixed_now):
    me = make_user()
    other = make_user()
    container.attendance_service.check_in(me.user_id, now=fixed_now)
    container.attendance_service.check_in(other.user_id, now=fixed_now)

    page = container.attendance_service.list_records(as_actor(me), AttendanceFilter(user_id=other.user_id))

    assert page.total == 1
    assert page.records[0].user_id == me.user_id
    assert page.summary.present_days == 1


def test_list_rejects_inverted_range(container, make_user, as_actor):
    admin = as_actor(make_user(role=Role.ADMIN))

    with pytest.raises(ValidationError):
        container.attendance_service.list_records(
            admin, AttendanceFilter(start=date(2025, 3, 5), end=date(2025, 3, 1))
        )


def test_department_stats_counts_present_today(container, make_user, as_actor, fixed_now):
    admin = as_actor(make_user(role=Role.ADMIN, department="HR"))
    engineer = make_user(department="Engineering")
    make_user(department="Engineering")
    container.attendance_service.check_in(engineer.user_id, now=fixed_now)

    stats = {row["department"]: row for row in container.attendance_service.department_stats(admin, now=fixed_now)}

    assert stats["Engineering"]["total_employees"] == 2
    assert stats["Engineering"]["present_today"] == 1
    assert stats["Engineering"]["percentage"] == 50.0
    assert stats["HR"]["present_today"] == 0


def test_employee_summary_aggregates_hours(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    employee = make_user()
    for offset in range(3):
        day = fixed_now + timedelta(days=offset)
        container.attendance_service.check_in(employee.user_id, now=day)
        container.attendance_service.check_out(employee.user_id, now=day + timedelta(hours=8))

    summary = container.attendance_service.employee_summary(
        hr, employee.user_id, start=date(2025, 3, 1), end=date(2025, 3, 31)
    )

    assert summary.total_days == 3
    assert summary.total_work_hours == pytest.approx(24.0)
    assert summary.average_work_hours == pytest.approx(8.0)


def test_update_record_validates_status(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    employee = make_user()
    record = container.attendance_service.check_in(employee.user_id, now=fixed_now)

    updated = container.attendance_service.update_record(hr, record.attendance_id, {"status": "late", "late_minutes": 15})
    assert updated.status == AttendanceStatus.LATE
    assert updated.late_minutes == 15

    with pytest.raises(ValidationError):
        container.attendance_service.update_record(hr, record.attendance_id, {"status": "sleeping"})
    with pytest.raises(AuthorizationError):
        container.attendance_service.update_record(as_actor(employee), record.attendance_id, {"notes": "x"})


@pytest.mark.parametrize("method", [CheckMethod.MANUAL, "manual"])
def test_self_service_cannot_claim_manual_method(container, repos, make_user, fixed_now, method):
    user = make_user()

    with pytest.raises(ValidationError, match="administrator"):
        container.attendance_service.check_in(user.user_id, now=fixed_now, method=method)

    assert repos.attendance.by_id == {}


def test_self_service_check_out_cannot_claim_manual_method(container, make_user, fixed_now):
    user = make_user()
    container.attendance_service.check_in(user.user_id, now=fixed_now, method=CheckMethod.MOBILE)

    with pytest.raises(ValidationError, match="administrator"):
        container.attendance_service.check_out(
            user.user_id, now=fixed_now + timedelta(hours=8), method=CheckMethod.MANUAL
        )

    assert not container.attendance_service.today_record(user.user_id, now=fixed_now).checked_out


def test_update_record_parses_boolean_strings(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    record = container.attendance_service.check_in(make_user().user_id, now=fixed_now)

    updated = container.attendance_service.update_record(
        hr, record.attendance_id, {"is_remote": "yes", "location_verified": "false"}
    )

    assert updated.is_remote is True
    assert updated.location_verified is False

    with pytest.raises(ValidationError, match="is_remote must be true or false"):
        container.attendance_service.update_record(hr, record.attendance_id, {"is_remote": "x"})


def test_update_record_rejects_non_string_notes(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    record = container.attendance_service.check_in(make_user().user_id, now=fixed_now)

    with pytest.raises(ValidationError, match="Notes must be a string"):
        container.attendance_service.update_record(hr, record.attendance_id, {"notes": 5})
