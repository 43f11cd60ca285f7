from __future__ import annotations

from flask import Flask, g, request

from ..common.datetime_utils import now_local, parse_iso_date, parse_optional_date
from ..common.http import json_body, make_auth_required, pagination, query_int, success
from ..common.validators import require_choice
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import LeaveStatus, LeaveType, Role
from ..core.exceptions import ValidationError
from ..container import Container
from ..database.mongo_base import page_window
from .model import LeaveFilter


def _required_date(data: dict, key: str):
    if not data.get(key):
        raise ValidationError(f"{key} is required")
    return parse_iso_date(str(data[key]))


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    @app.route("/api/leaves", methods=["POST"], endpoint="leaves_apply")
    @auth_required()
    def leaves_apply():
        data = json_body()
        leave = container.leave_service.apply(
            g.current_user,
            employee_id=data.get("employee_id"),
            leave_type=data.get("leave_type", ""),
            start_date=_required_date(data, "start_date"),
            end_date=_required_date(data, "end_date"),
            reason=data.get("reason", ""),
            is_half_day=data.get("is_half_day", False),
            half_day_type=data.get("half_day_type"),
        )
        return success(201, message="Leave request submitted successfully", leave=leave.to_dict())

    @app.route("/api/leaves", methods=["GET"], endpoint="leaves_list")
    @auth_required()
    def leaves_list():
        status = request.args.get("status")
        leave_type = request.args.get("leave_type")
        filters = LeaveFilter(
            user_id=request.args.get("employee_id") or None,
            status=require_choice(status, LeaveStatus, "status") if status else None,
            leave_type=require_choice(leave_type, LeaveType, "leave_type") if leave_type else None,
            start=parse_optional_date(request.args.get("start_date")),
            end=parse_optional_date(request.args.get("end_date")),
        )
        page = query_int("page", 1, maximum=None)
        limit = query_int("limit", DEFAULT_PAGE_LIMIT)
        skip, limit = page_window(page, limit)

        result = container.leave_service.list_requests(g.current_user, filters, skip=skip, limit=limit)
        return success(
            count=len(result.items),
            leaves=[leave.to_dict() for leave in result.items],
            summary=result.summary.to_dict(),
            pagination=pagination(page=page, limit=limit, total=result.total),
        )

    @app.route("/api/leaves/<leave_id>", methods=["GET"], endpoint="leaves_get")
    @auth_required()
    def leaves_get(leave_id: str):
        leave = container.leave_service.get_request(g.current_user, leave_id)
        return success(leave=leave.to_dict())

    @app.route("/api/leaves/<leave_id>", methods=["PUT"], endpoint="leaves_update")
    @auth_required()
    def leaves_update(leave_id: str):
        data = dict(json_body())
        for key in ("start_date", "end_date"):
            if key in data:
                data[key] = parse_iso_date(str(data[key]))
        leave = container.leave_service.update_request(g.current_user, leave_id, data)
        return success(message="Leave request updated successfully", leave=leave.to_dict())

    @app.route("/api/leaves/<leave_id>/approve", methods=["PUT"], endpoint="leaves_approve")
    @auth_required(Role.HR_OFFICER, Role.PAYROLL_OFFICER, Role.ADMIN)
    def leaves_approve(leave_id: str):
        leave = container.leave_service.approve(g.current_user, leave_id)
        return success(message="Leave approved successfully", leave=leave.to_dict())

    @app.route("/api/leaves/<leave_id>/reject", methods=["PUT"], endpoint="leaves_reject")
    @auth_required(Role.HR_OFFICER, Role.PAYROLL_OFFICER, Role.ADMIN)
    def leaves_reject(leave_id: str):
        data = json_body()
        leave = container.leave_service.reject(g.current_user, leave_id, reason=data.get("rejection_reason"))
        return success(message="Leave rejected successfully", leave=leave.to_dict())

    @app.route("/api/leaves/<leave_id>", methods=["DELETE"], endpoint="leaves_delete")
    @auth_required()
    def leaves_delete(leave_id: str):
        container.leave_service.delete_request(g.current_user, leave_id)
        return success(message="Leave request deleted successfully")

    @app.route("/api/leaves/employee/<user_id>/summary", methods=["GET"], endpoint="leaves_employee_summary")
    @auth_required()
    def leaves_employee_summary(user_id: str):
        year = query_int("year", now_local().year, maximum=None)
        summary = container.leave_service.summary_for_employee(g.current_user, user_id, year=year)
        return success(employee_id=user_id, year=year, summary=summary)

    @app.route(
        "/api/leaves/department/<department>/overview",
        methods=["GET"],
        endpoint="leaves_department_overview",
    )
    @auth_required(Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER)
    def leaves_department_overview(department: str):
        if not request.args.get("start_date") or not request.args.get("end_date"):
            raise ValidationError("Start date and end date are required")
        start = parse_iso_date(request.args["start_date"])
        end = parse_iso_date(request.args["end_date"])
        overview = container.leave_service.department_overview(g.current_user, department, start=start, end=end)
        return success(
            department=department,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            overview=overview,
        )
