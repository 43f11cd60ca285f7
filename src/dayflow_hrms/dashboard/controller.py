from __future__ import annotations

from flask import Flask, g

from ..common.http import make_auth_required, success
from ..core.enums import Role
from ..container import Container

STAFF = (Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER)


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    @app.route("/api/dashboard/overview", methods=["GET"], endpoint="dashboard_overview")
    @auth_required()
    def dashboard_overview():
        return success(overview=container.dashboard_service.overview(g.current_user))

    @app.route("/api/dashboard/alerts", methods=["GET"], endpoint="dashboard_alerts")
    @auth_required(*STAFF)
    def dashboard_alerts():
        alerts = container.dashboard_service.alerts(g.current_user)
        return success(count=len(alerts), alerts=alerts)

    @app.route("/api/system/summary", methods=["GET"], endpoint="system_summary")
    @auth_required(Role.ADMIN)
    def system_summary():
        return success(summary=container.dashboard_service.system_summary(g.current_user))
