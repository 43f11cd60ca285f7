from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import business_days, now_local
from ..common.validators import (
    require_bool,
    require_choice,
    require_date_order,
    require_max_length,
    require_non_empty,
)
from ..core.constants import DEFAULT_REJECTION_REASON, MAX_REASON_LENGTH
from ..core.enums import HalfDayType, LeaveStatus, LeaveType, Role, STAFF_ROLES
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import AuthUser
from ..users.repository import UserRepository
from .model import LeaveFilter, LeaveRequest, LeaveSummary, NewLeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

DECIDER_ROLES = frozenset({Role.HR_OFFICER, Role.PAYROLL_OFFICER, Role.ADMIN})

_UPDATABLE_FIELDS = {"leave_type", "start_date", "end_date", "reason", "is_half_day", "half_day_type"}


@dataclass(frozen=True)
class LeavePage:
    items: Sequence[LeaveRequest]
    total: int
    summary: LeaveSummary


def leave_duration(start: date, end: date, *, is_half_day: bool) -> float:
    """Business days in the range, or half a day."""
    if is_half_day:
        return 0.5
    return float(business_days(start, end))


class LeaveService:
    """Leave requests: PENDING -> APPROVED | REJECTED, both terminal."""

    def __init__(self, leaves: LeaveRepository, users: UserRepository):
        self._leaves = leaves
        self._users = users

    def _load(self, leave_id: str) -> LeaveRequest:
        leave = self._leaves.get_by_id(leave_id)
        if not leave:
            raise NotFoundError("Leave request not found")
        return leave

    @staticmethod
    def _validated_window(
        start: date,
        end: date,
        *,
        is_half_day: bool,
        half_day_type,
    ) -> tuple[float, Optional[HalfDayType]]:
        require_date_order(start, end)
        if is_half_day:
            if start != end:
                raise ValidationError("A half-day leave must start and end on the same day")
            if not half_day_type:
                raise ValidationError("half_day_type is required for half-day leave")
            half_day_type = require_choice(half_day_type, HalfDayType, "half_day_type")
        else:
            half_day_type = None

        duration = leave_duration(start, end, is_half_day=is_half_day)
        if duration < 0.5:
            raise ValidationError("Leave must include at least one working day")
        return duration, half_day_type

    def apply(
        self,
        actor: AuthUser,
        *,
        leave_type,
        start_date: date,
        end_date: date,
        reason: str,
        employee_id: Optional[str] = None,
        is_half_day: bool = False,
        half_day_type=None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        employee_id = employee_id or actor.user_id
        if employee_id != actor.user_id and actor.role not in STAFF_ROLES:
            raise AuthorizationError("You can only apply for leave for yourself")

        user = self._users.get_by_id(employee_id)
        if not user:
            raise NotFoundError("Employee not found")

        leave_type = require_choice(leave_type, LeaveType, "leave_type")
        reason = require_non_empty(reason, "Reason")
        require_max_length(reason, "Reason", MAX_REASON_LENGTH)
        is_half_day = require_bool(is_half_day, "is_half_day")
        duration, half_day_type = self._validated_window(
            start_date, end_date, is_half_day=is_half_day, half_day_type=half_day_type
        )

        leave_id = self._leaves.create(
            NewLeaveRequest(
                user_id=employee_id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                duration=duration,
                reason=reason,
                is_half_day=is_half_day,
                half_day_type=half_day_type,
                applied_at=now or now_local(),
            )
        )
        logger.info("Leave %s filed for %s (%s, %s days)", leave_id, employee_id, leave_type.value, duration)
        return self._load(leave_id)

    def _scope(self, actor: AuthUser, filters: LeaveFilter) -> LeaveFilter:
        if actor.role in STAFF_ROLES:
            return filters
        return LeaveFilter(
            user_id=actor.user_id,
            status=filters.status,
            leave_type=filters.leave_type,
            start=filters.start,
            end=filters.end,
        )

    def list_requests(self, actor: AuthUser, filters: LeaveFilter, *, skip: int = 0, limit: int = 0) -> LeavePage:
        filters = self._scope(actor, filters)
        items, total = self._leaves.list_requests(filters, skip=skip, limit=limit)
        summary = LeaveSummary.from_requests(self._leaves.find_all(filters))
        return LeavePage(items=items, total=total, summary=summary)

    def get_request(self, actor: AuthUser, leave_id: str) -> LeaveRequest:
        leave = self._load(leave_id)
        if actor.role not in STAFF_ROLES and leave.user_id != actor.user_id:
            raise AuthorizationError("You can only view your own leave requests")
        return leave

    def update_request(self, actor: AuthUser, leave_id: str, fields: dict) -> LeaveRequest:
        leave = self._load(leave_id)
        if leave.user_id != actor.user_id and actor.role not in {Role.ADMIN, Role.HR_OFFICER}:
            raise AuthorizationError("You can only update your own leave requests")
        if "status" in (fields or {}):
            raise ValidationError("Use approve or reject to change the status")
        if not leave.is_pending:
            raise ValidationError("Cannot update approved/rejected leave")

        update = {k: v for k, v in (fields or {}).items() if k in _UPDATABLE_FIELDS}
        if not update:
            raise ValidationError("No updatable fields provided")

        if "leave_type" in update:
            update["leave_type"] = require_choice(update["leave_type"], LeaveType, "leave_type")
        if "reason" in update:
            update["reason"] = require_non_empty(update["reason"], "Reason")
            require_max_length(update["reason"], "Reason", MAX_REASON_LENGTH)

        start = update.get("start_date", leave.start_date)
        end = update.get("end_date", leave.end_date)
        is_half_day = require_bool(update.get("is_half_day", leave.is_half_day), "is_half_day")
        duration, half_day_type = self._validated_window(
            start,
            end,
            is_half_day=is_half_day,
            half_day_type=update.get("half_day_type", leave.half_day_type),
        )
        update.update(
            start_date=start,
            end_date=end,
            is_half_day=is_half_day,
            half_day_type=half_day_type,
            duration=duration,
        )

        if not self._leaves.update_pending(leave_id, update):
            raise ValidationError("Leave has already been processed")
        return self._load(leave_id)

    def _check_decider(self, actor: AuthUser) -> None:
        if actor.role not in DECIDER_ROLES:
            raise AuthorizationError("You do not have permission to decide leave requests")

    def approve(self, actor: AuthUser, leave_id: str, *, now: Optional[datetime] = None) -> LeaveRequest:
        self._check_decider(actor)
        leave = self._load(leave_id)
        if not leave.is_pending:
            raise ValidationError("Leave has already been processed")

        decided = self._leaves.decide(
            leave_id=leave_id,
            status=LeaveStatus.APPROVED,
            decided_by=actor.user_id,
            decided_at=now or now_local(),
        )
        if not decided:
            raise ValidationError("Leave has already been processed")

        user = self._users.get_by_id(leave.user_id)
        bucket = leave.leave_type.value
        if user and bucket in user.leave_balance:
            self._users.adjust_leave_balance(leave.user_id, bucket=bucket, delta=-leave.duration)

        logger.info("%s approved leave %s (%s days)", actor.email, leave_id, leave.duration)
        return self._load(leave_id)

    def reject(
        self,
        actor: AuthUser,
        leave_id: str,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        self._check_decider(actor)
        leave = self._load(leave_id)
        if not leave.is_pending:
            raise ValidationError("Leave has already been processed")

        decided = self._leaves.decide(
            leave_id=leave_id,
            status=LeaveStatus.REJECTED,
            decided_by=actor.user_id,
            decided_at=now or now_local(),
            rejection_reason=(reason or "").strip() or DEFAULT_REJECTION_REASON,
        )
        if not decided:
            raise ValidationError("Leave has already been processed")
        logger.info("%s rejected leave %s", actor.email, leave_id)
        return self._load(leave_id)

    def delete_request(self, actor: AuthUser, leave_id: str) -> None:
        leave = self._load(leave_id)
        is_owner = leave.user_id == actor.user_id
        if actor.role != Role.ADMIN:
            if not is_owner:
                raise AuthorizationError("You can only delete your own leave requests")
            if not leave.is_pending:
                raise ValidationError("Only pending leave requests can be deleted")
        self._leaves.delete(leave_id)

    def summary_for_employee(self, actor: AuthUser, user_id: str, *, year: int) -> list[dict]:
        """Per leave type for the year: total, approved, pending and rejected days."""
        if actor.role not in STAFF_ROLES and actor.user_id != user_id:
            raise AuthorizationError("You can only view your own leave summary")

        items = self._leaves.find_all(
            LeaveFilter(user_id=user_id, start=date(year, 1, 1), end=date(year, 12, 31))
        )
        by_type: dict[LeaveType, dict] = {}
        for item in items:
            row = by_type.setdefault(
                item.leave_type,
                {"leave_type": item.leave_type.value, "total_days": 0.0, "approved": 0.0, "pending": 0.0, "rejected": 0.0},
            )
            row["total_days"] += item.duration
            row[item.status.value] += item.duration
        return sorted(by_type.values(), key=lambda r: r["leave_type"])

    def department_overview(self, actor: AuthUser, department: str, *, start: date, end: date) -> list[dict]:
        """Leaves of active department members starting in the window, per status."""
        if actor.role not in STAFF_ROLES:
            raise AuthorizationError("You do not have permission to view department leave")
        require_date_order(start, end)

        members = {u.user_id for u in self._users.list_active() if u.department == department}
        rows: dict[LeaveStatus, dict] = {}
        for item in self._leaves.find_all(LeaveFilter(start=start, end=end)):
            if item.user_id not in members or not start <= item.start_date <= end:
                continue
            row = rows.setdefault(item.status, {"status": item.status.value, "count": 0, "total_days": 0.0})
            row["count"] += 1
            row["total_days"] += item.duration
        return sorted(rows.values(), key=lambda r: r["status"])
