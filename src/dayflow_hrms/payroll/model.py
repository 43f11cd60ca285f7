from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import PaymentStatus


@dataclass(frozen=True)
class PayrollBreakdown:
    """Computed amounts for one pay period."""

    basic: float
    hra: float
    gross: float
    provident_fund: float
    tax: float
    total_deductions: float
    net_pay: float
    period_days: int = 0

    def to_dict(self) -> dict:
        return {
            "basic": self.basic,
            "hra": self.hra,
            "gross": self.gross,
            "provident_fund": self.provident_fund,
            "tax": self.tax,
            "total_deductions": self.total_deductions,
            "net_pay": self.net_pay,
            "period_days": self.period_days,
        }


@dataclass(frozen=True)
class AttendanceSnapshot:
    """Attendance in the pay period, frozen at generation time."""

    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    total_work_hours: float = 0.0
    overtime_hours: float = 0.0

    def to_dict(self) -> dict:
        return {
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "total_work_hours": round(self.total_work_hours, 2),
            "overtime_hours": round(self.overtime_hours, 2),
        }


@dataclass(frozen=True)
class PayrollRecord:
    payroll_id: str
    user_id: str
    period_start: date
    period_end: date
    pay_date: date
    breakdown: PayrollBreakdown
    attendance: AttendanceSnapshot = field(default_factory=AttendanceSnapshot)
    payment_status: PaymentStatus = PaymentStatus.PROCESSING
    notes: Optional[str] = None
    processed_by: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.payroll_id,
            "employee_id": self.user_id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "pay_date": self.pay_date.isoformat(),
            **self.breakdown.to_dict(),
            "attendance_summary": self.attendance.to_dict(),
            "payment_status": self.payment_status.value,
            "notes": self.notes,
            "processed_by": self.processed_by,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class NewPayroll:
    user_id: str
    period_start: date
    period_end: date
    breakdown: PayrollBreakdown
    attendance: AttendanceSnapshot
    processed_by: str
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class PayrollFilter:
    user_id: Optional[str] = None
    period_from: Optional[date] = None
    period_to: Optional[date] = None
    payment_status: Optional[PaymentStatus] = None


@dataclass(frozen=True)
class PayrollTotals:
    count: int
    total_gross: float
    total_net: float
    total_deductions: float
    by_status: dict

    @classmethod
    def from_records(cls, records: Sequence[PayrollRecord]) -> "PayrollTotals":
        by_status = {s.value: 0 for s in PaymentStatus}
        for r in records:
            by_status[r.payment_status.value] += 1
        return cls(
            count=len(records),
            total_gross=round(sum(r.breakdown.gross for r in records), 2),
            total_net=round(sum(r.breakdown.net_pay for r in records), 2),
            total_deductions=round(sum(r.breakdown.total_deductions for r in records), 2),
            by_status=by_status,
        )

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_gross": self.total_gross,
            "total_net": self.total_net,
            "total_deductions": self.total_deductions,
            "by_status": dict(self.by_status),
        }
