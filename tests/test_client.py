import pytest

from dayflow_hrms.client import ApiError, HrmsClient


class FakeResponse:
    def __init__(self, status_code, payload=None, reason=""):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)


def _client(responses):
    sleeps = []
    session = FakeSession(responses)
    client = HrmsClient("http://hrms.local/", session=session, sleep=sleeps.append)
    return client, session, sleeps


def test_retries_rate_limited_calls_with_backoff():
    limited = FakeResponse(429, {"success": False, "message": "Too many requests"})
    client, session, sleeps = _client([limited, limited, limited, FakeResponse(200, {"status": "OK"})])

    assert client.health() == {"status": "OK"}
    assert sleeps == [1, 2, 4]
    assert len(session.calls) == 4


def test_gives_up_after_backoff_is_exhausted():
    limited = FakeResponse(429, {"success": False, "message": "Too many requests"})
    client, _, sleeps = _client([limited] * 4)

    with pytest.raises(ApiError) as excinfo:
        client.health()

    assert excinfo.value.status_code == 429
    assert excinfo.value.message == "Too many requests"
    assert sleeps == [1, 2, 4]


def test_login_keeps_session_and_sends_bearer_token():
    user = {"id": "u1", "role": "Employee"}
    client, session, _ = _client(
        [
            FakeResponse(200, {"success": True, "token": "abc", "user": user}),
            FakeResponse(201, {"success": True, "attendance": {"id": "a1"}}),
        ]
    )

    client.login("employee1@workzen.com", "emp123")
    record = client.check_in()

    assert client.role == "Employee"
    assert record == {"id": "a1"}
    method, url, kwargs = session.calls[1]
    assert (method, url) == ("POST", "http://hrms.local/api/attendance/check-in")
    assert kwargs["headers"]["Authorization"] == "Bearer abc"


def test_error_without_json_body_uses_reason():
    client, _, sleeps = _client([FakeResponse(502, None, reason="Bad Gateway")])

    with pytest.raises(ApiError, match="502: Bad Gateway"):
        client.me()
    assert sleeps == []


def test_logout_forgets_credentials():
    client, _, _ = _client([])
    client.token = "abc"
    client.user = {"role": "Admin"}

    client.logout()

    assert client.token is None
    assert client.role is None
