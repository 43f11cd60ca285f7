from __future__ import annotations

import csv
import io

from flask import Flask, g, request

from ..common.datetime_utils import parse_optional_date
from ..common.http import json_body, make_auth_required, success
from ..core.enums import Role
from ..container import Container
from .model import ReportFilters

REPORT_STAFF = (Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER)


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    def _write_report_csv(*, rows, fieldnames, filename: str):
        """Write report rows to a CSV attachment (UTF-8 with BOM for spreadsheet apps)."""

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    def _generate(report_type: str, data: dict):
        filters = ReportFilters(
            start=parse_optional_date(data.get("start_date")),
            end=parse_optional_date(data.get("end_date")),
            department=data.get("department") or None,
            employee_id=data.get("employee_id") or None,
            status=data.get("status") or None,
        )
        report = container.report_service.generate(g.current_user, report_type, filters=filters, name=data.get("name"))
        return success(201, message="Report generated successfully", report=report.to_dict())

    @app.route("/api/reports", methods=["GET"], endpoint="reports_list")
    @auth_required(*REPORT_STAFF)
    def reports_list():
        reports = container.report_service.list_reports(g.current_user, report_type=request.args.get("type"))
        return success(count=len(reports), reports=[r.to_dict(include_data=False) for r in reports])

    @app.route("/api/reports", methods=["POST"], endpoint="reports_create")
    @auth_required(*REPORT_STAFF)
    def reports_create():
        data = json_body()
        return _generate(data.get("report_type", ""), data)

    @app.route("/api/reports/<report_type>", methods=["POST"], endpoint="reports_generate")
    @auth_required(*REPORT_STAFF)
    def reports_generate(report_type: str):
        return _generate(report_type, json_body())

    @app.route("/api/reports/<report_id>", methods=["GET"], endpoint="reports_get")
    @auth_required(*REPORT_STAFF)
    def reports_get(report_id: str):
        report = container.report_service.get_report(g.current_user, report_id)
        return success(report=report.to_dict())

    @app.route("/api/reports/<report_id>", methods=["DELETE"], endpoint="reports_delete")
    @auth_required(Role.ADMIN)
    def reports_delete(report_id: str):
        container.report_service.delete_report(g.current_user, report_id)
        return success(message="Report deleted successfully")

    @app.route("/api/reports/<report_id>/export.csv", methods=["GET"], endpoint="reports_export_csv")
    @auth_required(*REPORT_STAFF)
    def reports_export_csv(report_id: str):
        report, fieldnames = container.report_service.export_rows(g.current_user, report_id)
        stamp = report.generated_at.strftime("%Y%m%d") if report.generated_at else "export"
        filename = f"{report.report_type.value}_report_{stamp}.csv"
        return _write_report_csv(rows=report.data, fieldnames=fieldnames, filename=filename)
