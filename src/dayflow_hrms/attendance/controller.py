from __future__ import annotations

from typing import Optional

from flask import Flask, g, request

from ..common.datetime_utils import parse_hhmm, parse_iso_date, parse_optional_date
from ..common.http import json_body, make_auth_required, pagination, query_int, success
from ..common.validators import require_choice
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import AttendanceStatus, CheckMethod, Role
from ..core.exceptions import ValidationError
from ..container import Container
from ..database.mongo_base import page_window
from .model import AttendanceFilter, DeviceInfo, GeoLocation

STAFF = (Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER)


def _parse_location(raw) -> Optional[GeoLocation]:
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("location must be an object")
    try:
        return GeoLocation(
            latitude=float(raw["latitude"]) if raw.get("latitude") is not None else None,
            longitude=float(raw["longitude"]) if raw.get("longitude") is not None else None,
            address=raw.get("address"),
        )
    except (TypeError, ValueError):
        raise ValidationError("location latitude/longitude must be numbers")


def _device_info() -> DeviceInfo:
    ua = request.user_agent
    return DeviceInfo(user_agent=ua.string or None, platform=ua.platform or None)


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @auth_required()
    def attendance_check_in():
        data = json_body()
        record = container.attendance_service.check_in(
            g.current_user.user_id,
            location=_parse_location(data.get("location")),
            method=require_choice(data.get("method") or CheckMethod.WEB.value, CheckMethod, "method"),
            ip_address=request.remote_addr,
            device_info=_device_info(),
        )
        return success(201, message="Checked in successfully", attendance=record.to_dict())

    @app.route("/api/attendance/check-out", methods=["PUT"], endpoint="attendance_check_out")
    @auth_required()
    def attendance_check_out():
        data = json_body()
        record = container.attendance_service.check_out(
            g.current_user.user_id,
            location=_parse_location(data.get("location")),
            method=require_choice(data.get("method") or CheckMethod.WEB.value, CheckMethod, "method"),
            ip_address=request.remote_addr,
            device_info=_device_info(),
        )
        return success(message="Checked out successfully", attendance=record.to_dict())

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    @auth_required()
    def attendance_list():
        status = request.args.get("status")
        filters = AttendanceFilter(
            user_id=request.args.get("employee_id") or None,
            start=parse_optional_date(request.args.get("start_date")),
            end=parse_optional_date(request.args.get("end_date")),
            status=require_choice(status, AttendanceStatus, "status") if status else None,
        )
        page = query_int("page", 1, maximum=None)
        limit = query_int("limit", DEFAULT_PAGE_LIMIT)
        skip, limit = page_window(page, limit)

        result = container.attendance_service.list_records(
            g.current_user,
            filters,
            skip=skip,
            limit=limit,
            sort_by=request.args.get("sort_by", "work_date"),
            descending=request.args.get("sort_order", "desc").lower() != "asc",
        )
        return success(
            count=len(result.records),
            attendance=[r.to_dict() for r in result.records],
            summary=result.summary.to_dict(),
            pagination=pagination(page=page, limit=limit, total=result.total),
        )

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @auth_required()
    def attendance_today():
        records = container.attendance_service.today(g.current_user)
        return success(count=len(records), attendance=[r.to_dict() for r in records])

    @app.route("/api/attendance/<attendance_id>", methods=["GET"], endpoint="attendance_get")
    @auth_required()
    def attendance_get(attendance_id: str):
        record = container.attendance_service.get_record(g.current_user, attendance_id)
        return success(attendance=record.to_dict())

    @app.route("/api/attendance/<attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @auth_required(Role.ADMIN, Role.HR_OFFICER)
    def attendance_update(attendance_id: str):
        record = container.attendance_service.update_record(g.current_user, attendance_id, json_body())
        return success(message="Attendance updated successfully", attendance=record.to_dict())

    @app.route("/api/attendance/employee/<user_id>/summary", methods=["GET"], endpoint="attendance_employee_summary")
    @auth_required()
    def attendance_employee_summary(user_id: str):
        start_s = request.args.get("start_date")
        end_s = request.args.get("end_date")
        if not start_s or not end_s:
            raise ValidationError("start_date and end_date are required")
        summary = container.attendance_service.employee_summary(
            g.current_user,
            user_id,
            start=parse_iso_date(start_s),
            end=parse_iso_date(end_s),
        )
        return success(employee_id=user_id, summary=summary.to_dict())

    @app.route("/api/attendance/department/<department>", methods=["GET"], endpoint="attendance_department")
    @auth_required(*STAFF)
    def attendance_department(department: str):
        records = container.attendance_service.department_records(
            g.current_user,
            department,
            start=parse_optional_date(request.args.get("start_date")),
            end=parse_optional_date(request.args.get("end_date")),
        )
        return success(count=len(records), attendance=[r.to_dict() for r in records])

    @app.route("/api/attendance/stats/by-department", methods=["GET"], endpoint="attendance_department_stats")
    @auth_required(*STAFF)
    def attendance_department_stats():
        return success(stats=container.attendance_service.department_stats(g.current_user))

    @app.route("/api/attendance/admin/check-in/<user_id>", methods=["POST"], endpoint="attendance_admin_check_in")
    @auth_required(Role.ADMIN)
    def attendance_admin_check_in(user_id: str):
        data = json_body()
        record = container.attendance_service.admin_check_in(
            g.current_user,
            user_id,
            work_date=parse_optional_date(data.get("date")),
            check_in_time=parse_hhmm(data["check_in_time"]) if data.get("check_in_time") else None,
            location=_parse_location(data.get("location")),
            ip_address=request.remote_addr,
        )
        return success(201, message="Check-in marked successfully", attendance=record.to_dict())

    @app.route("/api/attendance/admin/check-out/<user_id>", methods=["PUT"], endpoint="attendance_admin_check_out")
    @auth_required(Role.ADMIN)
    def attendance_admin_check_out(user_id: str):
        data = json_body()
        record = container.attendance_service.admin_check_out(
            g.current_user,
            user_id,
            work_date=parse_optional_date(data.get("date")),
            check_out_time=parse_hhmm(data["check_out_time"]) if data.get("check_out_time") else None,
            location=_parse_location(data.get("location")),
            ip_address=request.remote_addr,
        )
        return success(message="Check-out marked successfully", attendance=record.to_dict())
