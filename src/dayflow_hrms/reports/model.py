from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import ReportType


@dataclass(frozen=True)
class ReportFilters:
    start: Optional[date] = None
    end: Optional[date] = None
    department: Optional[str] = None
    employee_id: Optional[str] = None
    status: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
            "department": self.department,
            "employee_id": self.employee_id,
            "status": self.status,
        }


@dataclass(frozen=True)
class Report:
    """A generated report artifact: summary figures plus the flat rows behind them."""

    report_id: str
    name: str
    report_type: ReportType
    filters: dict
    summary: dict
    data: Sequence[dict] = field(default_factory=list)
    generated_by: Optional[str] = None
    generated_at: Optional[datetime] = None
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
    record_count: int = 0

    def to_dict(self, *, include_data: bool = True) -> dict:
        out = {
            "id": self.report_id,
            "name": self.name,
            "report_type": self.report_type.value,
            "filters": dict(self.filters),
            "summary": dict(self.summary),
            "generated_by": self.generated_by,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "access_count": self.access_count,
            "last_accessed_at": self.last_accessed_at.isoformat() if self.last_accessed_at else None,
            "record_count": self.record_count,
        }
        if include_data:
            out["data"] = list(self.data)
        return out


@dataclass(frozen=True)
class NewReport:
    name: str
    report_type: ReportType
    filters: dict
    summary: dict
    data: Sequence[dict]
    generated_by: str
    generated_at: datetime
