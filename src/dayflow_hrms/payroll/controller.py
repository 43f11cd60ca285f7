from __future__ import annotations

from datetime import date

from flask import Flask, g, request

from ..common.datetime_utils import month_bounds, now_local, parse_iso_date
from ..common.http import json_body, make_auth_required, pagination, query_int, success
from ..common.validators import require_choice
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import PaymentStatus, Role
from ..core.exceptions import ValidationError
from ..container import Container
from ..database.mongo_base import page_window
from .model import PayrollFilter

PAYROLL_STAFF = (Role.ADMIN, Role.PAYROLL_OFFICER)


def _int_field(data: dict, key: str, default: int) -> int:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def _period(data: dict) -> tuple[date, date]:
    """period_start/period_end, or month/year (defaults to the current month)."""
    if data.get("period_start") or data.get("period_end"):
        if not data.get("period_start") or not data.get("period_end"):
            raise ValidationError("period_start and period_end are both required")
        return parse_iso_date(str(data["period_start"])), parse_iso_date(str(data["period_end"]))

    today = now_local().date()
    month = _int_field(data, "month", today.month)
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return month_bounds(_int_field(data, "year", today.year), month)


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    def _generate(data: dict):
        start, end = _period(data)
        if data.get("employee_id"):
            record = container.payroll_service.generate(
                g.current_user,
                employee_id=str(data["employee_id"]),
                start=start,
                end=end,
                basic_salary=data.get("basic_salary"),
                notes=data.get("notes"),
            )
            return success(201, message="Payroll generated successfully", payroll=record.to_dict())

        result = container.payroll_service.generate_all(g.current_user, start=start, end=end)
        return success(
            201,
            message=f"Payroll generated for {len(result.created)} employees",
            count=len(result.created),
            payrolls=[r.to_dict() for r in result.created],
            skipped=list(result.skipped),
        )

    @app.route("/api/payroll", methods=["POST"], endpoint="payroll_create")
    @auth_required(*PAYROLL_STAFF)
    def payroll_create():
        data = json_body()
        if not data.get("employee_id"):
            raise ValidationError("employee_id is required")
        return _generate(data)

    @app.route("/api/payroll/generate", methods=["POST"], endpoint="payroll_generate")
    @auth_required(*PAYROLL_STAFF)
    def payroll_generate():
        return _generate(json_body())

    @app.route("/api/payroll", methods=["GET"], endpoint="payroll_list")
    @auth_required()
    def payroll_list():
        status = request.args.get("payment_status")
        period_from = period_to = None
        if request.args.get("month") or request.args.get("year"):
            period_from, period_to = _period(request.args.to_dict())
        filters = PayrollFilter(
            user_id=request.args.get("employee_id") or None,
            period_from=period_from,
            period_to=period_to,
            payment_status=require_choice(status, PaymentStatus, "payment_status") if status else None,
        )
        page = query_int("page", 1, maximum=None)
        limit = query_int("limit", DEFAULT_PAGE_LIMIT)
        skip, limit = page_window(page, limit)

        result = container.payroll_service.list_records(g.current_user, filters, skip=skip, limit=limit)
        return success(
            count=len(result.items),
            payrolls=[r.to_dict() for r in result.items],
            summary=result.summary.to_dict(),
            pagination=pagination(page=page, limit=limit, total=result.total),
        )

    @app.route("/api/payroll/stats", methods=["GET"], endpoint="payroll_stats")
    @auth_required(*PAYROLL_STAFF)
    def payroll_stats():
        today = now_local().date()
        stats = container.payroll_service.stats(
            g.current_user,
            year=query_int("year", today.year, maximum=None),
            month=query_int("month", today.month, maximum=None),
        )
        return success(stats=stats)

    @app.route("/api/payroll/payslips/<employee_id>", methods=["GET"], endpoint="payroll_payslips")
    @auth_required()
    def payroll_payslips(employee_id: str):
        records = container.payroll_service.payslips(g.current_user, employee_id)
        return success(count=len(records), payslips=[r.to_dict() for r in records])

    @app.route("/api/payroll/<payroll_id>", methods=["GET"], endpoint="payroll_get")
    @auth_required()
    def payroll_get(payroll_id: str):
        record = container.payroll_service.get_record(g.current_user, payroll_id)
        return success(payroll=record.to_dict())

    @app.route("/api/payroll/<payroll_id>", methods=["PUT"], endpoint="payroll_update")
    @auth_required(*PAYROLL_STAFF)
    def payroll_update(payroll_id: str):
        data = json_body()
        record = container.payroll_service.update_record(
            g.current_user,
            payroll_id,
            payment_status=data.get("payment_status"),
            notes=data.get("notes"),
        )
        return success(message="Payroll updated successfully", payroll=record.to_dict())

    @app.route("/api/payroll/<payroll_id>", methods=["DELETE"], endpoint="payroll_delete")
    @auth_required(Role.ADMIN)
    def payroll_delete(payroll_id: str):
        container.payroll_service.delete_record(g.current_user, payroll_id)
        return success(message="Payroll deleted successfully")
