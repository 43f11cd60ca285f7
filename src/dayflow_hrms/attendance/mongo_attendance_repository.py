from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from ..common.datetime_utils import start_of_day
from ..core.enums import AttendanceStatus, CheckMethod
from ..core.exceptions import ValidationError
from ..database.mongo_base import as_date, date_range_query, id_str, to_object_id
from .model import AttendanceFilter, AttendanceRecord, CheckEvent, DeviceInfo, GeoLocation
from .repository import AttendanceRepository
from .work_hours import WorkHours

ATTENDANCE = "attendance"

SORTABLE_FIELDS = {
    "date": "work_date",
    "work_date": "work_date",
    "status": "status",
    "work_hours": "work_hours",
    "created_at": "created_at",
}

_UPDATABLE = {"status", "notes", "late_minutes", "early_departure_minutes", "is_remote", "location_verified"}


def _event_to_doc(event: CheckEvent) -> dict:
    return {
        "time": event.time,
        "method": event.method.value,
        "location": event.location.to_dict() if event.location else None,
        "ip_address": event.ip_address,
        "device_info": event.device_info.to_dict() if event.device_info else None,
    }


def _event_from_doc(doc: Optional[dict]) -> Optional[CheckEvent]:
    if not doc or not doc.get("time"):
        return None
    location = doc.get("location") or None
    device = doc.get("device_info") or None
    return CheckEvent(
        time=doc["time"],
        method=CheckMethod(doc.get("method") or CheckMethod.WEB.value),
        location=GeoLocation(**location) if location else None,
        ip_address=doc.get("ip_address"),
        device_info=DeviceInfo(**device) if device else None,
    )


def record_from_doc(doc: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=str(doc["_id"]),
        user_id=str(doc["user_id"]),
        work_date=as_date(doc["work_date"]),
        check_in=_event_from_doc(doc.get("check_in")),
        check_out=_event_from_doc(doc.get("check_out")),
        status=AttendanceStatus(doc.get("status", AttendanceStatus.PRESENT.value)),
        work_hours=float(doc.get("work_hours") or 0),
        overtime_hours=float(doc.get("overtime_hours") or 0),
        break_minutes=int(doc.get("break_minutes") or 0),
        notes=doc.get("notes"),
        late_minutes=int(doc.get("late_minutes") or 0),
        early_departure_minutes=int(doc.get("early_departure_minutes") or 0),
        is_remote=bool(doc.get("is_remote", False)),
        location_verified=bool(doc.get("location_verified", False)),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def _build_query(filters: AttendanceFilter) -> dict:
    query: dict = {}
    if filters.user_id:
        query["user_id"] = to_object_id(filters.user_id, field_name="employee id")
    elif filters.user_ids is not None:
        query["user_id"] = {"$in": [to_object_id(u) for u in filters.user_ids]}
    dates = date_range_query(filters.start, filters.end)
    if dates:
        query["work_date"] = dates
    if filters.status is not None:
        query["status"] = filters.status.value
    return query


class MongoAttendanceRepository(AttendanceRepository):
    def __init__(self, db: Database):
        self._attendance = db[ATTENDANCE]

    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        doc = self._attendance.find_one({"_id": to_object_id(attendance_id, field_name="attendance id")})
        return record_from_doc(doc) if doc else None

    def get_for_user_and_date(self, user_id: str, work_date: date) -> Optional[AttendanceRecord]:
        doc = self._attendance.find_one({"user_id": to_object_id(user_id), "work_date": start_of_day(work_date)})
        return record_from_doc(doc) if doc else None

    def create_checkin(
        self,
        *,
        user_id: str,
        work_date: date,
        check_in: CheckEvent,
        status: AttendanceStatus,
        notes: Optional[str] = None,
    ) -> str:
        now = datetime.now()
        try:
            result = self._attendance.insert_one(
                {
                    "user_id": to_object_id(user_id),
                    "work_date": start_of_day(work_date),
                    "check_in": _event_to_doc(check_in),
                    "check_out": None,
                    "status": status.value,
                    "work_hours": 0.0,
                    "work_hours_formatted": "00:00:00",
                    "overtime_hours": 0.0,
                    "overtime_hours_formatted": "00:00:00",
                    "break_minutes": 0,
                    "notes": notes,
                    "late_minutes": 0,
                    "early_departure_minutes": 0,
                    "is_remote": False,
                    "location_verified": False,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        except DuplicateKeyError:
            raise ValidationError("Already checked in for this date")
        return id_str(result.inserted_id)

    def update_checkout(self, *, attendance_id: str, check_out: CheckEvent, hours: WorkHours) -> bool:
        result = self._attendance.update_one(
            {"_id": to_object_id(attendance_id), "check_out": None},
            {
                "$set": {
                    "check_out": _event_to_doc(check_out),
                    "work_hours": hours.work_hours,
                    "work_hours_formatted": hours.work_hours_formatted,
                    "overtime_hours": hours.overtime_hours,
                    "overtime_hours_formatted": hours.overtime_hours_formatted,
                    "updated_at": datetime.now(),
                }
            },
        )
        return result.modified_count == 1

    def update_fields(self, attendance_id: str, fields: dict) -> bool:
        update = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if "status" in update and isinstance(update["status"], AttendanceStatus):
            update["status"] = update["status"].value
        if not update:
            return False
        update["updated_at"] = datetime.now()
        result = self._attendance.update_one({"_id": to_object_id(attendance_id)}, {"$set": update})
        return result.matched_count == 1

    def list_records(
        self,
        filters: AttendanceFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort_by: str = "work_date",
        descending: bool = True,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        query = _build_query(filters)
        sort_field = SORTABLE_FIELDS.get(sort_by, "work_date")
        total = self._attendance.count_documents(query)
        cursor = (
            self._attendance.find(query)
            .sort([(sort_field, DESCENDING if descending else ASCENDING), ("_id", DESCENDING)])
            .skip(int(skip))
        )
        if limit:
            cursor = cursor.limit(int(limit))
        return [record_from_doc(d) for d in cursor], total

    def find_all(self, filters: AttendanceFilter) -> Sequence[AttendanceRecord]:
        cursor = self._attendance.find(_build_query(filters)).sort("work_date", ASCENDING)
        return [record_from_doc(d) for d in cursor]
