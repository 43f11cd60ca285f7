from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF = (1, 2, 4)


class ApiError(Exception):
    """Non-2xx response from the HRMS API."""

    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class HrmsClient:
    """Thin client for the DayFlow HRMS API.

    Keeps the session (token, role, user) on the instance and retries
    rate-limited calls (HTTP 429) with exponential backoff.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        backoff: tuple = DEFAULT_BACKOFF,
        timeout: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user: Optional[dict] = None
        self._session = session or requests.Session()
        self._backoff = tuple(backoff)
        self._timeout = timeout
        self._sleep = sleep

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role") if self.user else None

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, *, json: Any = None, params: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempt = 0
        while True:
            response = self._session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self._timeout,
            )
            if response.status_code == 429 and attempt < len(self._backoff):
                delay = self._backoff[attempt]
                attempt += 1
                logger.warning("Rate limited on %s %s, retry %d in %ss", method, path, attempt, delay)
                self._sleep(delay)
                continue
            break

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not response.ok:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ApiError(response.status_code, message or response.reason or "Request failed", payload)
        return payload

    # --- auth ---

    def login(self, identifier: str, password: str) -> dict:
        payload = self.request("POST", "/api/auth/login", json={"email": identifier, "password": password})
        self.token = payload.get("token")
        self.user = payload.get("user")
        return payload

    def register(self, **fields) -> dict:
        payload = self.request("POST", "/api/auth/register", json=fields)
        self.token = payload.get("token")
        self.user = payload.get("user")
        return payload

    def logout(self) -> None:
        self.token = None
        self.user = None

    def me(self) -> dict:
        return self.request("GET", "/api/auth/me")["user"]

    # --- attendance ---

    def check_in(self, *, location: Optional[dict] = None) -> dict:
        return self.request("POST", "/api/attendance/check-in", json={"location": location})["attendance"]

    def check_out(self, *, location: Optional[dict] = None) -> dict:
        return self.request("PUT", "/api/attendance/check-out", json={"location": location})["attendance"]

    def attendance(self, **params) -> dict:
        return self.request("GET", "/api/attendance", params=params)

    # --- leaves ---

    def apply_leave(self, **fields) -> dict:
        return self.request("POST", "/api/leaves", json=fields)["leave"]

    def leaves(self, **params) -> dict:
        return self.request("GET", "/api/leaves", params=params)

    def approve_leave(self, leave_id: str) -> dict:
        return self.request("PUT", f"/api/leaves/{leave_id}/approve")["leave"]

    def reject_leave(self, leave_id: str, reason: Optional[str] = None) -> dict:
        return self.request("PUT", f"/api/leaves/{leave_id}/reject", json={"rejection_reason": reason})["leave"]

    # --- payroll ---

    def generate_payroll(self, **fields) -> dict:
        return self.request("POST", "/api/payroll/generate", json=fields)

    def payslips(self, employee_id: str) -> list:
        return self.request("GET", f"/api/payroll/payslips/{employee_id}")["payslips"]

    # --- reports ---

    def generate_report(self, report_type: str, **filters) -> dict:
        return self.request("POST", f"/api/reports/{report_type}", json=filters)["report"]

    def health(self) -> dict:
        return self.request("GET", "/api/health")
