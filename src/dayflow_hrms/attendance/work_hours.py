from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import format_hours
from ..core.constants import STANDARD_WORK_HOURS


@dataclass(frozen=True)
class WorkHours:
    work_hours: float
    overtime_hours: float

    @property
    def work_hours_formatted(self) -> str:
        return format_hours(self.work_hours)

    @property
    def overtime_hours_formatted(self) -> str:
        return format_hours(self.overtime_hours)


def compute_work_hours(
    check_in: datetime,
    check_out: datetime,
    *,
    break_minutes: int = 0,
    standard_hours: float = STANDARD_WORK_HOURS,
) -> WorkHours:
    """Worked hours net of breaks (never negative) and the overtime beyond the standard day."""
    elapsed = (check_out - check_in).total_seconds() / 3600
    worked = max(0.0, elapsed - (break_minutes or 0) / 60)
    overtime = max(0.0, worked - standard_hours)
    return WorkHours(work_hours=worked, overtime_hours=overtime)
