from datetime import date

import pytest

from dayflow_hrms.core.enums import LeaveStatus, LeaveType, Role
from dayflow_hrms.core.exceptions import AuthorizationError, ValidationError
from dayflow_hrms.leaves.model import LeaveFilter
from dayflow_hrms.leaves.service import leave_duration


def _apply(container, actor, **overrides):
    payload = dict(
        leave_type="annual",
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 7),
        reason="Family trip",
    )
    payload.update(overrides)
    return container.leave_service.apply(actor, **payload)


def test_duration_counts_weekdays_only():
    assert leave_duration(date(2025, 3, 3), date(2025, 3, 9), is_half_day=False) == 5.0
    assert leave_duration(date(2025, 3, 3), date(2025, 3, 3), is_half_day=True) == 0.5


def test_apply_creates_pending_request(container, make_user, as_actor, fixed_now):
    employee = as_actor(make_user())

    leave = _apply(container, employee, now=fixed_now)

    assert leave.status == LeaveStatus.PENDING
    assert leave.leave_type == LeaveType.ANNUAL
    assert leave.duration == 5.0
    assert leave.user_id == employee.user_id


def test_end_before_start_is_rejected(container, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(ValidationError):
        _apply(container, employee, start_date=date(2025, 3, 7), end_date=date(2025, 3, 3))


def test_weekend_only_leave_is_rejected(container, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(ValidationError, match="working day"):
        _apply(container, employee, start_date=date(2025, 3, 8), end_date=date(2025, 3, 9))


def test_half_day_needs_single_day_and_type(container, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(ValidationError):
        _apply(container, employee, is_half_day=True, half_day_type="first-half")
    with pytest.raises(ValidationError):
        _apply(container, employee, end_date=date(2025, 3, 3), is_half_day=True)

    leave = _apply(container, employee, end_date=date(2025, 3, 3), is_half_day=True, half_day_type="second-half")
    assert leave.duration == 0.5


def test_unknown_leave_type_and_missing_reason(container, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(ValidationError):
        _apply(container, employee, leave_type="vacation-ish")
    with pytest.raises(ValidationError):
        _apply(container, employee, reason="   ")


def test_employee_cannot_file_for_someone_else(container, make_user, as_actor):
    employee = as_actor(make_user())
    other = make_user()

    with pytest.raises(AuthorizationError):
        _apply(container, employee, employee_id=other.user_id)


def test_approve_deducts_balance_once(container, repos, make_user, as_actor, fixed_now):
    user = make_user()
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    leave = _apply(container, as_actor(user))

    approved = container.leave_service.approve(hr, leave.leave_id, now=fixed_now)

    assert approved.status == LeaveStatus.APPROVED
    assert approved.decided_by == hr.user_id
    assert approved.decided_at == fixed_now
    assert repos.users.get_by_id(user.user_id).leave_balance["annual"] == 7

    with pytest.raises(ValidationError, match="already been processed"):
        container.leave_service.approve(hr, leave.leave_id)
    with pytest.raises(ValidationError, match="already been processed"):
        container.leave_service.reject(hr, leave.leave_id)
    assert repos.users.get_by_id(user.user_id).leave_balance["annual"] == 7


def test_reject_uses_default_reason(container, repos, make_user, as_actor):
    user = make_user()
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    leave = _apply(container, as_actor(user))

    rejected = container.leave_service.reject(hr, leave.leave_id)

    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.rejection_reason == "No reason provided"
    assert repos.users.get_by_id(user.user_id).leave_balance["annual"] == 12


def test_employee_cannot_decide(container, make_user, as_actor):
    employee = as_actor(make_user())
    leave = _apply(container, employee)

    with pytest.raises(AuthorizationError):
        container.leave_service.approve(employee, leave.leave_id)


def test_update_only_while_pending(container, make_user, as_actor):
    employee = as_actor(make_user())
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    leave = _apply(container, employee)

    updated = container.leave_service.update_request(employee, leave.leave_id, {"end_date": date(2025, 3, 4)})
    assert updated.duration == 2.0

    with pytest.raises(ValidationError):
        container.leave_service.update_request(employee, leave.leave_id, {"status": "approved"})

    container.leave_service.approve(hr, leave.leave_id)
    with pytest.raises(ValidationError, match="Cannot update"):
        container.leave_service.update_request(employee, leave.leave_id, {"reason": "Changed"})


def test_delete_rules(container, repos, make_user, as_actor):
    employee = as_actor(make_user())
    other = as_actor(make_user())
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    admin = as_actor(make_user(role=Role.ADMIN))
    leave = _apply(container, employee)

    with pytest.raises(AuthorizationError):
        container.leave_service.delete_request(other, leave.leave_id)

    container.leave_service.approve(hr, leave.leave_id)
    with pytest.raises(ValidationError):
        container.leave_service.delete_request(employee, leave.leave_id)

    container.leave_service.delete_request(admin, leave.leave_id)
    assert repos.leaves.by_id == {}


def test_listing_scopes_employees_and_summarises(container, make_user, as_actor):
    employee = as_actor(make_user())
    other = as_actor(make_user())
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    mine = _apply(container, employee)
    _apply(container, other)
    container.leave_service.approve(hr, mine.leave_id)

    own = container.leave_service.list_requests(employee, LeaveFilter())
    assert own.total == 1
    assert own.summary.approved == 1

    everyone = container.leave_service.list_requests(hr, LeaveFilter(status=LeaveStatus.PENDING))
    assert everyone.total == 1
    assert everyone.summary.pending == 1


def test_summary_for_employee_groups_by_type(container, make_user, as_actor):
    employee = as_actor(make_user())
    hr = as_actor(make_user(role=Role.HR_OFFICER))
    first = _apply(container, employee)
    _apply(container, employee, leave_type="sick", start_date=date(2025, 3, 10), end_date=date(2025, 3, 10))
    container.leave_service.approve(hr, first.leave_id)

    rows = {r["leave_type"]: r for r in container.leave_service.summary_for_employee(hr, employee.user_id, year=2025)}

    assert rows["annual"]["approved"] == 5.0
    assert rows["sick"]["pending"] == 1.0
    assert rows["sick"]["total_days"] == 1.0


def test_string_false_half_day_is_a_full_day_leave(container, make_user, as_actor, fixed_now):
    employee = as_actor(make_user())

    leave = _apply(container, employee, end_date=date(2025, 3, 5), is_half_day="false", now=fixed_now)

    assert leave.is_half_day is False
    assert leave.duration == 3.0


def test_unparseable_half_day_flag_is_rejected(container, repos, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(ValidationError, match="is_half_day must be true or false"):
        _apply(container, employee, is_half_day="maybe")

    assert repos.leaves.by_id == {}


def test_department_overview_groups_by_status(container, make_user, as_actor, fixed_now):
    hr = as_actor(make_user(role=Role.HR_OFFICER, department="Human Resources"))
    first = as_actor(make_user())
    second = as_actor(make_user())
    outsider = as_actor(make_user(department="Sales"))

    approved = _apply(container, first, now=fixed_now)
    container.leave_service.approve(hr, approved.leave_id, now=fixed_now)
    _apply(container, second, start_date=date(2025, 3, 10), end_date=date(2025, 3, 11), now=fixed_now)
    _apply(container, second, start_date=date(2025, 4, 7), end_date=date(2025, 4, 7), now=fixed_now)
    _apply(container, outsider, now=fixed_now)

    overview = container.leave_service.department_overview(
        hr, "Engineering", start=date(2025, 3, 1), end=date(2025, 3, 31)
    )

    assert overview == [
        {"status": "approved", "count": 1, "total_days": 5.0},
        {"status": "pending", "count": 1, "total_days": 2.0},
    ]


def test_department_overview_is_staff_only(container, make_user, as_actor):
    employee = as_actor(make_user())

    with pytest.raises(AuthorizationError):
        container.leave_service.department_overview(
            employee, "Engineering", start=date(2025, 3, 1), end=date(2025, 3, 31)
        )
