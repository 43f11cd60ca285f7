import pytest

from dayflow_hrms.container import wire_container
from dayflow_hrms.core.enums import Role
from dayflow_hrms.main import RATE_LIMITER_KEY, create_app

TESTING = "dayflow_hrms.config.testing"


def _app(repos, **overrides):
    container = wire_container(
        users_repo=repos.users,
        counters_repo=repos.counters,
        attendance_repo=repos.attendance,
        leaves_repo=repos.leaves,
        payrolls_repo=repos.payrolls,
        reports_repo=repos.reports,
    )
    return create_app(settings_module=TESTING, container=container, overrides=overrides)


@pytest.fixture
def client(repos):
    return _app(repos).test_client()


@pytest.fixture
def login(client):
    def _login(user, password="secret123"):
        resp = client.post("/api/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _login


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "OK"
    assert body["success"] is True


def test_unknown_endpoint_is_json_404(client):
    resp = client.get("/api/does-not-exist")

    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "message": "API endpoint not found"}


def test_protected_route_without_token(client):
    resp = client.get("/api/auth/me")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_garbage_token_is_rejected(client):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401


def test_register_returns_token_and_code(client):
    resp = client.post(
        "/api/auth/register",
        json={"first_name": "Jane", "last_name": "Smith", "email": "jane@example.com", "password": "secret123"},
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["token"]
    assert body["user"]["role"] == "Employee"
    assert body["user"]["employee_code"].startswith("DAJASM")
    assert "password_hash" not in body["user"]


def test_bad_credentials(client, make_user):
    user = make_user()

    resp = client.post("/api/auth/login", json={"email": user.email, "password": "wrong-one"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credentials"


def test_me_returns_current_user(client, make_user, login):
    user = make_user()

    resp = client.get("/api/auth/me", headers=login(user))

    assert resp.status_code == 200
    assert resp.get_json()["user"]["email"] == user.email


def test_employee_cannot_list_accounts(client, make_user, login):
    headers = login(make_user())

    resp = client.get("/api/auth/users", headers=headers)

    assert resp.status_code == 403


def test_admin_lists_accounts(client, make_user, login):
    admin = make_user(role=Role.ADMIN)
    make_user()

    resp = client.get("/api/auth/users", headers=login(admin))

    assert resp.status_code == 200
    assert resp.get_json()["count"] == 2


def test_check_in_twice(client, make_user, login):
    headers = login(make_user())

    first = client.post("/api/attendance/check-in", json={}, headers=headers)
    second = client.post("/api/attendance/check-in", json={}, headers=headers)

    assert first.status_code == 201
    assert first.get_json()["attendance"]["check_out"] is None
    assert second.status_code == 400
    assert second.get_json()["message"] == "Already checked in today"


def test_check_out_without_check_in(client, make_user, login):
    headers = login(make_user())

    resp = client.put("/api/attendance/check-out", json={}, headers=headers)

    assert resp.status_code == 404


def test_deactivated_user_token_stops_working(client, repos, make_user, login):
    user = make_user()
    headers = login(user)
    repos.users.set_active(user.user_id, is_active=False)

    resp = client.get("/api/auth/me", headers=headers)

    assert resp.status_code == 401


def test_leave_flow_over_http(client, make_user, login):
    employee_headers = login(make_user())
    hr_headers = login(make_user(role=Role.HR_OFFICER))

    created = client.post(
        "/api/leaves",
        json={"leave_type": "sick", "start_date": "2025-03-03", "end_date": "2025-03-04", "reason": "Flu"},
        headers=employee_headers,
    )
    assert created.status_code == 201
    leave_id = created.get_json()["leave"]["id"]

    denied = client.put(f"/api/leaves/{leave_id}/approve", headers=employee_headers)
    assert denied.status_code == 403

    approved = client.put(f"/api/leaves/{leave_id}/approve", headers=hr_headers)
    assert approved.status_code == 200
    assert approved.get_json()["leave"]["status"] == "approved"

    again = client.put(f"/api/leaves/{leave_id}/reject", headers=hr_headers)
    assert again.status_code == 400


def test_invalid_json_body(client, make_user, login):
    headers = login(make_user())
    headers["Content-Type"] = "application/json"

    resp = client.post("/api/leaves", data="{not json", headers=headers)

    assert resp.status_code == 400


def test_rate_limit_returns_429(repos):
    app = _app(repos, RATE_LIMIT=2, RATE_LIMIT_WINDOW_SECONDS=60)
    client = app.test_client()

    codes = [client.get("/api/health").status_code for _ in range(3)]

    assert codes == [200, 200, 429]
    app.extensions[RATE_LIMITER_KEY].reset()
    assert client.get("/api/health").status_code == 200


def test_report_csv_export(client, make_user, login):
    hr_headers = login(make_user(role=Role.HR_OFFICER))
    created = client.post("/api/reports/employee", json={}, headers=hr_headers)
    report_id = created.get_json()["report"]["id"]

    resp = client.get(f"/api/reports/{report_id}/export.csv", headers=hr_headers)

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    text = resp.data.decode("utf-8-sig")
    assert text.splitlines()[0].startswith("employee_id,employee_code,employee_name")


def test_employee_cannot_check_in_as_manual(client, repos, make_user, login):
    headers = login(make_user())

    resp = client.post("/api/attendance/check-in", json={"method": "manual"}, headers=headers)

    assert resp.status_code == 400
    assert repos.attendance.by_id == {}


def test_dashboard_routes_by_role(client, make_user, login):
    employee_headers = login(make_user())
    hr_headers = login(make_user(role=Role.HR_OFFICER))
    admin_headers = login(make_user(role=Role.ADMIN))

    overview = client.get("/api/dashboard/overview", headers=employee_headers)
    assert overview.status_code == 200
    assert "employees" not in overview.get_json()["overview"]

    assert client.get("/api/dashboard/alerts", headers=employee_headers).status_code == 403
    alerts = client.get("/api/dashboard/alerts", headers=hr_headers)
    assert alerts.status_code == 200
    assert alerts.get_json()["count"] == len(alerts.get_json()["alerts"])

    assert client.get("/api/system/summary", headers=hr_headers).status_code == 403
    summary = client.get("/api/system/summary", headers=admin_headers)
    assert summary.status_code == 200
    assert summary.get_json()["summary"]["total_users"] == 3


def test_department_leave_overview_requires_dates(client, make_user, login):
    hr_headers = login(make_user(role=Role.HR_OFFICER))

    missing = client.get("/api/leaves/department/Engineering/overview", headers=hr_headers)
    ok = client.get(
        "/api/leaves/department/Engineering/overview?start_date=2025-03-01&end_date=2025-03-31",
        headers=hr_headers,
    )

    assert missing.status_code == 400
    assert ok.status_code == 200
    assert ok.get_json()["overview"] == []
