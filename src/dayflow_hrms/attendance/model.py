from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import format_hours
from ..core.enums import AttendanceStatus, CheckMethod


@dataclass(frozen=True)
class GeoLocation:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}


@dataclass(frozen=True)
class DeviceInfo:
    user_agent: Optional[str] = None
    platform: Optional[str] = None

    def to_dict(self) -> dict:
        return {"user_agent": self.user_agent, "platform": self.platform}


@dataclass(frozen=True)
class CheckEvent:
    """One side of a daily record: when and how the user checked in or out."""

    time: datetime
    method: CheckMethod = CheckMethod.WEB
    location: Optional[GeoLocation] = None
    ip_address: Optional[str] = None
    device_info: Optional[DeviceInfo] = None

    def to_dict(self) -> dict:
        return {
            "time": self.time.isoformat(),
            "method": self.method.value,
            "location": self.location.to_dict() if self.location else None,
            "ip_address": self.ip_address,
            "device_info": self.device_info.to_dict() if self.device_info else None,
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (user, calendar date)."""

    attendance_id: str
    user_id: str
    work_date: date
    check_in: CheckEvent
    check_out: Optional[CheckEvent] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    work_hours: float = 0.0
    overtime_hours: float = 0.0
    break_minutes: int = 0
    notes: Optional[str] = None
    late_minutes: int = 0
    early_departure_minutes: int = 0
    is_remote: bool = False
    location_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def checked_out(self) -> bool:
        return self.check_out is not None

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "employee_id": self.user_id,
            "date": self.work_date.isoformat(),
            "check_in": self.check_in.to_dict(),
            "check_out": self.check_out.to_dict() if self.check_out else None,
            "status": self.status.value,
            "work_hours": round(self.work_hours, 2),
            "work_hours_formatted": format_hours(self.work_hours),
            "overtime_hours": round(self.overtime_hours, 2),
            "overtime_hours_formatted": format_hours(self.overtime_hours),
            "break_minutes": self.break_minutes,
            "notes": self.notes,
            "late_minutes": self.late_minutes,
            "early_departure_minutes": self.early_departure_minutes,
            "is_remote": self.is_remote,
            "location_verified": self.location_verified,
        }


@dataclass(frozen=True)
class AttendanceFilter:
    user_id: Optional[str] = None
    user_ids: Optional[Sequence[str]] = None
    start: Optional[date] = None
    end: Optional[date] = None
    status: Optional[AttendanceStatus] = None


@dataclass(frozen=True)
class AttendanceSummary:
    total_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    leave_days: int = 0
    total_work_hours: float = 0.0
    total_overtime_hours: float = 0.0

    @property
    def average_work_hours(self) -> float:
        return self.total_work_hours / self.total_days if self.total_days else 0.0

    @classmethod
    def from_records(cls, records: Sequence[AttendanceRecord]) -> "AttendanceSummary":
        counts = {status: 0 for status in AttendanceStatus}
        for r in records:
            counts[r.status] += 1
        return cls(
            total_days=len(records),
            present_days=counts[AttendanceStatus.PRESENT],
            absent_days=counts[AttendanceStatus.ABSENT],
            late_days=counts[AttendanceStatus.LATE],
            half_days=counts[AttendanceStatus.HALF_DAY],
            leave_days=counts[AttendanceStatus.ON_LEAVE],
            total_work_hours=sum(r.work_hours for r in records),
            total_overtime_hours=sum(r.overtime_hours for r in records),
        )

    def to_dict(self) -> dict:
        return {
            "total_days": self.total_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "half_days": self.half_days,
            "leave_days": self.leave_days,
            "total_work_hours": round(self.total_work_hours, 2),
            "total_overtime_hours": round(self.total_overtime_hours, 2),
            "average_work_hours": round(self.average_work_hours, 2),
        }


@dataclass(frozen=True)
class AttendancePage:
    records: Sequence[AttendanceRecord]
    total: int
    summary: AttendanceSummary = field(default_factory=AttendanceSummary)
