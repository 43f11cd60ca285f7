from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import LeaveFilter, LeaveRequest, NewLeaveRequest


class LeaveRepository(Protocol):
    def create(self, new_leave: NewLeaveRequest) -> str:
        raise NotImplementedError

    def get_by_id(self, leave_id: str) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_requests(self, filters: LeaveFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[LeaveRequest], int]:
        raise NotImplementedError

    def find_all(self, filters: LeaveFilter) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def update_pending(self, leave_id: str, fields: dict) -> bool:
        """Apply field changes only while the request is still PENDING."""

        raise NotImplementedError

    def decide(
        self,
        *,
        leave_id: str,
        status: LeaveStatus,
        decided_by: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Conditional transition out of PENDING; False when already decided."""

        raise NotImplementedError

    def delete(self, leave_id: str) -> bool:
        raise NotImplementedError
