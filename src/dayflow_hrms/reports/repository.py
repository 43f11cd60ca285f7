from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ReportType
from .model import NewReport, Report


class ReportRepository(Protocol):
    def create(self, new_report: NewReport) -> str:
        raise NotImplementedError

    def get_by_id(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    def list_reports(self, *, report_types: Optional[Sequence[ReportType]] = None) -> Sequence[Report]:
        raise NotImplementedError

    def record_access(self, report_id: str, *, at: datetime) -> bool:
        raise NotImplementedError

    def delete(self, report_id: str) -> bool:
        raise NotImplementedError
