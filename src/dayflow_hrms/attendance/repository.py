from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceFilter, AttendanceRecord, CheckEvent
from .work_hours import WorkHours


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        user_id: str,
        work_date: date,
        check_in: CheckEvent,
        status: AttendanceStatus,
        notes: Optional[str] = None,
    ) -> str:
        """Insert the day's record; raises ValidationError if (user, date) already exists."""

        raise NotImplementedError

    def update_checkout(self, *, attendance_id: str, check_out: CheckEvent, hours: WorkHours) -> bool:
        """Stamp checkout only if the record has none yet."""

        raise NotImplementedError

    def update_fields(self, attendance_id: str, fields: dict) -> bool:
        raise NotImplementedError

    def list_records(
        self,
        filters: AttendanceFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort_by: str = "work_date",
        descending: bool = True,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        raise NotImplementedError

    def find_all(self, filters: AttendanceFilter) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
