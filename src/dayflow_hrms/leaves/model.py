from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import HalfDayType, LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveRequest:
    """Domain entity: a leave request and its decision."""

    leave_id: str
    user_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    duration: float
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    is_half_day: bool = False
    half_day_type: Optional[HalfDayType] = None
    applied_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == LeaveStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.leave_id,
            "employee_id": self.user_id,
            "leave_type": self.leave_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration": self.duration,
            "reason": self.reason,
            "status": self.status.value,
            "is_half_day": self.is_half_day,
            "half_day_type": self.half_day_type.value if self.half_day_type else None,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
            "decided_by": self.decided_by,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "rejection_reason": self.rejection_reason,
        }


@dataclass(frozen=True)
class NewLeaveRequest:
    user_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    duration: float
    reason: str
    is_half_day: bool
    half_day_type: Optional[HalfDayType]
    applied_at: datetime


@dataclass(frozen=True)
class LeaveFilter:
    user_id: Optional[str] = None
    status: Optional[LeaveStatus] = None
    leave_type: Optional[LeaveType] = None
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class LeaveSummary:
    total: int
    total_days: float
    pending: int
    approved: int
    rejected: int

    @classmethod
    def from_requests(cls, items: Sequence[LeaveRequest]) -> "LeaveSummary":
        return cls(
            total=len(items),
            total_days=sum(i.duration for i in items),
            pending=sum(1 for i in items if i.status == LeaveStatus.PENDING),
            approved=sum(1 for i in items if i.status == LeaveStatus.APPROVED),
            rejected=sum(1 for i in items if i.status == LeaveStatus.REJECTED),
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "total_days": self.total_days,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
        }
