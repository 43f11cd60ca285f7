from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pymongo import DESCENDING
from pymongo.database import Database

from ..common.datetime_utils import start_of_day
from ..core.enums import HalfDayType, LeaveStatus, LeaveType
from ..database.mongo_base import as_date, as_datetime, id_str, to_object_id
from .model import LeaveFilter, LeaveRequest, NewLeaveRequest
from .repository import LeaveRepository

LEAVES = "leaves"

_UPDATABLE = {"leave_type", "start_date", "end_date", "duration", "reason", "is_half_day", "half_day_type"}


def leave_from_doc(doc: dict) -> LeaveRequest:
    half_day_type = doc.get("half_day_type")
    return LeaveRequest(
        leave_id=str(doc["_id"]),
        user_id=str(doc["user_id"]),
        leave_type=LeaveType(doc["leave_type"]),
        start_date=as_date(doc["start_date"]),
        end_date=as_date(doc["end_date"]),
        duration=float(doc.get("duration") or 0),
        reason=doc.get("reason", ""),
        status=LeaveStatus(doc.get("status", LeaveStatus.PENDING.value)),
        is_half_day=bool(doc.get("is_half_day", False)),
        half_day_type=HalfDayType(half_day_type) if half_day_type else None,
        applied_at=doc.get("applied_at"),
        decided_by=id_str(doc.get("decided_by")),
        decided_at=doc.get("decided_at"),
        rejection_reason=doc.get("rejection_reason"),
    )


def _build_query(filters: LeaveFilter) -> dict:
    query: dict = {}
    if filters.user_id:
        query["user_id"] = to_object_id(filters.user_id, field_name="employee id")
    if filters.status is not None:
        query["status"] = filters.status.value
    if filters.leave_type is not None:
        query["leave_type"] = filters.leave_type.value
    # overlap with the requested window
    if filters.end is not None:
        query["start_date"] = {"$lte": start_of_day(filters.end)}
    if filters.start is not None:
        query["end_date"] = {"$gte": start_of_day(filters.start)}
    return query


def _to_doc_values(fields: dict) -> dict:
    out = {}
    for key, value in fields.items():
        if key not in _UPDATABLE:
            continue
        if key in {"start_date", "end_date"}:
            value = as_datetime(value)
        elif hasattr(value, "value"):
            value = value.value
        out[key] = value
    return out


class MongoLeaveRepository(LeaveRepository):
    def __init__(self, db: Database):
        self._leaves = db[LEAVES]

    def create(self, new_leave: NewLeaveRequest) -> str:
        result = self._leaves.insert_one(
            {
                "user_id": to_object_id(new_leave.user_id),
                "leave_type": new_leave.leave_type.value,
                "start_date": as_datetime(new_leave.start_date),
                "end_date": as_datetime(new_leave.end_date),
                "duration": new_leave.duration,
                "reason": new_leave.reason,
                "status": LeaveStatus.PENDING.value,
                "is_half_day": new_leave.is_half_day,
                "half_day_type": new_leave.half_day_type.value if new_leave.half_day_type else None,
                "applied_at": new_leave.applied_at,
                "decided_by": None,
                "decided_at": None,
                "rejection_reason": None,
            }
        )
        return id_str(result.inserted_id)

    def get_by_id(self, leave_id: str) -> Optional[LeaveRequest]:
        doc = self._leaves.find_one({"_id": to_object_id(leave_id, field_name="leave id")})
        return leave_from_doc(doc) if doc else None

    def list_requests(self, filters: LeaveFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[LeaveRequest], int]:
        query = _build_query(filters)
        total = self._leaves.count_documents(query)
        cursor = self._leaves.find(query).sort([("applied_at", DESCENDING), ("_id", DESCENDING)]).skip(int(skip))
        if limit:
            cursor = cursor.limit(int(limit))
        return [leave_from_doc(d) for d in cursor], total

    def find_all(self, filters: LeaveFilter) -> Sequence[LeaveRequest]:
        return [leave_from_doc(d) for d in self._leaves.find(_build_query(filters)).sort("start_date", 1)]

    def update_pending(self, leave_id: str, fields: dict) -> bool:
        update = _to_doc_values(fields)
        if not update:
            return False
        result = self._leaves.update_one(
            {"_id": to_object_id(leave_id), "status": LeaveStatus.PENDING.value},
            {"$set": update},
        )
        return result.matched_count == 1

    def decide(
        self,
        *,
        leave_id: str,
        status: LeaveStatus,
        decided_by: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        result = self._leaves.update_one(
            {"_id": to_object_id(leave_id), "status": LeaveStatus.PENDING.value},
            {
                "$set": {
                    "status": status.value,
                    "decided_by": to_object_id(decided_by),
                    "decided_at": decided_at,
                    "rejection_reason": rejection_reason,
                }
            },
        )
        return result.modified_count == 1

    def delete(self, leave_id: str) -> bool:
        result = self._leaves.delete_one({"_id": to_object_id(leave_id)})
        return result.deleted_count == 1
