from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_bool, require_choice, require_date_order, require_max_length
from ..core.constants import ADMIN_DEVICE_INFO, MAX_NOTES_LENGTH, STANDARD_WORK_HOURS
from ..core.enums import AttendanceStatus, CheckMethod, Role, STAFF_ROLES
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import AuthUser
from ..users.repository import UserRepository
from .model import (
    AttendanceFilter,
    AttendancePage,
    AttendanceRecord,
    AttendanceSummary,
    CheckEvent,
    DeviceInfo,
    GeoLocation,
)
from .repository import AttendanceRepository
from .work_hours import compute_work_hours

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"status", "notes", "late_minutes", "early_departure_minutes", "is_remote", "location_verified"}


class AttendanceService:
    """Daily check-in/check-out, work-hour math and attendance views."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        standard_hours: float = STANDARD_WORK_HOURS,
    ):
        self._attendance = attendance
        self._users = users
        self._standard_hours = float(standard_hours)

    def _require_user(self, user_id: str, *, must_be_active: bool = True):
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if must_be_active and not user.is_active:
            raise ValidationError("User account is inactive")
        return user

    def _reload(self, attendance_id: str) -> AttendanceRecord:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    @staticmethod
    def _require_self_service_method(method: CheckMethod) -> None:
        # manual marks are reserved for administrators
        if require_choice(method, CheckMethod, "method") == CheckMethod.MANUAL:
            raise ValidationError("Manual check-in/out can only be recorded by an administrator")

    def check_in(
        self,
        user_id: str,
        *,
        now: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        method: CheckMethod = CheckMethod.WEB,
        ip_address: Optional[str] = None,
        device_info: Optional[DeviceInfo] = None,
    ) -> AttendanceRecord:
        self._require_self_service_method(method)
        now = now or now_local()
        today = now.date()
        self._require_user(user_id)

        if self._attendance.get_for_user_and_date(user_id, today):
            raise ValidationError("Already checked in today")

        attendance_id = self._attendance.create_checkin(
            user_id=user_id,
            work_date=today,
            check_in=CheckEvent(
                time=now,
                method=method,
                location=location,
                ip_address=ip_address,
                device_info=device_info,
            ),
            status=AttendanceStatus.PRESENT,
        )
        logger.info("User %s checked in at %s", user_id, now.isoformat(timespec="seconds"))
        return self._reload(attendance_id)

    def check_out(
        self,
        user_id: str,
        *,
        now: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        method: CheckMethod = CheckMethod.WEB,
        ip_address: Optional[str] = None,
        device_info: Optional[DeviceInfo] = None,
    ) -> AttendanceRecord:
        self._require_self_service_method(method)
        now = now or now_local()
        record = self._attendance.get_for_user_and_date(user_id, now.date())
        if not record:
            raise NotFoundError("No check-in record found for today")
        return self._stamp_checkout(
            record,
            CheckEvent(time=now, method=method, location=location, ip_address=ip_address, device_info=device_info),
        )

    def _stamp_checkout(self, record: AttendanceRecord, event: CheckEvent) -> AttendanceRecord:
        if record.checked_out:
            raise ValidationError("Already checked out today")
        if event.time < record.check_in.time:
            raise ValidationError("Check-out time cannot be before check-in time")

        hours = compute_work_hours(
            record.check_in.time,
            event.time,
            break_minutes=record.break_minutes,
            standard_hours=self._standard_hours,
        )
        if not self._attendance.update_checkout(attendance_id=record.attendance_id, check_out=event, hours=hours):
            # another request stamped the checkout first
            raise ValidationError("Already checked out today")
        logger.info(
            "User %s checked out at %s (%s worked)",
            record.user_id,
            event.time.isoformat(timespec="seconds"),
            hours.work_hours_formatted,
        )
        return self._reload(record.attendance_id)

    @staticmethod
    def _require_admin(actor: AuthUser) -> None:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can mark attendance for other users")

    @staticmethod
    def _manual_time(work_date: date, at: Optional[time], now: datetime) -> datetime:
        return datetime.combine(work_date, at if at is not None else now.time().replace(microsecond=0))

    def admin_check_in(
        self,
        actor: AuthUser,
        target_user_id: str,
        *,
        work_date: Optional[date] = None,
        check_in_time: Optional[time] = None,
        location: Optional[GeoLocation] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Mark check-in on behalf of a user, optionally backdated."""
        self._require_admin(actor)
        now = now or now_local()
        work_date = work_date or now.date()
        self._require_user(target_user_id, must_be_active=False)

        if self._attendance.get_for_user_and_date(target_user_id, work_date):
            raise ValidationError("Attendance already marked for this user on this date")

        attendance_id = self._attendance.create_checkin(
            user_id=target_user_id,
            work_date=work_date,
            check_in=CheckEvent(
                time=self._manual_time(work_date, check_in_time, now),
                method=CheckMethod.MANUAL,
                location=location,
                ip_address=ip_address,
                device_info=DeviceInfo(**ADMIN_DEVICE_INFO),
            ),
            status=AttendanceStatus.PRESENT,
        )
        logger.info("%s marked check-in for %s on %s", actor.email, target_user_id, work_date.isoformat())
        return self._reload(attendance_id)

    def admin_check_out(
        self,
        actor: AuthUser,
        target_user_id: str,
        *,
        work_date: Optional[date] = None,
        check_out_time: Optional[time] = None,
        location: Optional[GeoLocation] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        self._require_admin(actor)
        now = now or now_local()
        work_date = work_date or now.date()
        self._require_user(target_user_id, must_be_active=False)

        record = self._attendance.get_for_user_and_date(target_user_id, work_date)
        if not record:
            raise NotFoundError("No check-in record found for this user on this date")

        event = CheckEvent(
            time=self._manual_time(work_date, check_out_time, now),
            method=CheckMethod.MANUAL,
            location=location,
            ip_address=ip_address,
            device_info=DeviceInfo(**ADMIN_DEVICE_INFO),
        )
        updated = self._stamp_checkout(record, event)
        logger.info("%s marked check-out for %s on %s", actor.email, target_user_id, work_date.isoformat())
        return updated

    def _scope(self, actor: AuthUser, filters: AttendanceFilter) -> AttendanceFilter:
        """Employees only ever see their own records."""
        if actor.role in STAFF_ROLES:
            return filters
        return AttendanceFilter(user_id=actor.user_id, start=filters.start, end=filters.end, status=filters.status)

    def list_records(
        self,
        actor: AuthUser,
        filters: AttendanceFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort_by: str = "work_date",
        descending: bool = True,
    ) -> AttendancePage:
        if filters.start and filters.end:
            require_date_order(filters.start, filters.end)
        filters = self._scope(actor, filters)
        records, total = self._attendance.list_records(
            filters, skip=skip, limit=limit, sort_by=sort_by, descending=descending
        )
        summary = AttendanceSummary.from_records(self._attendance.find_all(filters))
        return AttendancePage(records=records, total=total, summary=summary)

    def get_record(self, actor: AuthUser, attendance_id: str) -> AttendanceRecord:
        record = self._reload(attendance_id)
        if actor.role not in STAFF_ROLES and record.user_id != actor.user_id:
            raise AuthorizationError("You can only view your own attendance")
        return record

    def today_record(self, user_id: str, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        now = now or now_local()
        return self._attendance.get_for_user_and_date(user_id, now.date())

    def today(self, actor: AuthUser, *, now: Optional[datetime] = None) -> Sequence[AttendanceRecord]:
        now = now or now_local()
        if actor.role not in STAFF_ROLES:
            record = self.today_record(actor.user_id, now=now)
            return [record] if record else []
        return self._attendance.find_all(AttendanceFilter(start=now.date(), end=now.date()))

    def employee_summary(self, actor: AuthUser, user_id: str, *, start: date, end: date) -> AttendanceSummary:
        if actor.role not in STAFF_ROLES and actor.user_id != user_id:
            raise AuthorizationError("You can only view your own attendance")
        require_date_order(start, end)
        self._require_user(user_id, must_be_active=False)
        records = self._attendance.find_all(AttendanceFilter(user_id=user_id, start=start, end=end))
        return AttendanceSummary.from_records(records)

    def department_records(self, actor: AuthUser, department: str, *, start: Optional[date] = None, end: Optional[date] = None):
        if actor.role not in STAFF_ROLES:
            raise AuthorizationError("You do not have permission to view department attendance")
        member_ids = [u.user_id for u in self._users.list_active() if u.department == department]
        return self._attendance.find_all(AttendanceFilter(user_ids=member_ids, start=start, end=end))

    def department_stats(self, actor: AuthUser, *, now: Optional[datetime] = None) -> list[dict]:
        """Per department: active headcount, present today and percentage."""
        if actor.role not in STAFF_ROLES:
            raise AuthorizationError("You do not have permission to view attendance statistics")
        now = now or now_local()

        headcount: dict[str, int] = defaultdict(int)
        department_of: dict[str, str] = {}
        for user in self._users.list_active():
            dept = user.department or "Unassigned"
            headcount[dept] += 1
            department_of[user.user_id] = dept

        present: dict[str, int] = defaultdict(int)
        for record in self._attendance.find_all(AttendanceFilter(start=now.date(), end=now.date())):
            dept = department_of.get(record.user_id)
            if dept and record.status in {AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.HALF_DAY}:
                present[dept] += 1

        return [
            {
                "department": dept,
                "total_employees": total,
                "present_today": present[dept],
                "percentage": round(present[dept] * 100 / total, 2) if total else 0.0,
            }
            for dept, total in sorted(headcount.items())
        ]

    def update_record(self, actor: AuthUser, attendance_id: str, fields: dict) -> AttendanceRecord:
        if actor.role not in {Role.ADMIN, Role.HR_OFFICER}:
            raise AuthorizationError("You do not have permission to edit attendance")
        self._reload(attendance_id)

        update = {k: v for k, v in (fields or {}).items() if k in _UPDATABLE_FIELDS}
        if not update:
            raise ValidationError("No updatable fields provided")
        if "status" in update:
            update["status"] = require_choice(update["status"], AttendanceStatus, "status")
        if "notes" in update:
            update["notes"] = require_max_length(update["notes"], "Notes", MAX_NOTES_LENGTH)
        for key in ("late_minutes", "early_departure_minutes"):
            if key in update:
                try:
                    update[key] = max(int(update[key]), 0)
                except (TypeError, ValueError):
                    raise ValidationError(f"{key} must be an integer")
        for key in ("is_remote", "location_verified"):
            if key in update:
                update[key] = require_bool(update[key], key)

        self._attendance.update_fields(attendance_id, update)
        logger.info("%s updated attendance %s (%s)", actor.email, attendance_id, ", ".join(sorted(update)))
        return self._reload(attendance_id)
