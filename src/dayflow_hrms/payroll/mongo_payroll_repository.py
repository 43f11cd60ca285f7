from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from ..common.datetime_utils import start_of_day
from ..core.enums import PaymentStatus
from ..core.exceptions import ValidationError
from ..database.mongo_base import as_date, as_datetime, date_range_query, id_str, to_object_id
from .model import AttendanceSnapshot, NewPayroll, PayrollBreakdown, PayrollFilter, PayrollRecord
from .repository import PayrollRepository

PAYROLLS = "payrolls"

_UPDATABLE = {"payment_status", "notes", "paid_at"}


def payroll_from_doc(doc: dict) -> PayrollRecord:
    amounts = doc.get("breakdown") or {}
    snapshot = doc.get("attendance_summary") or {}
    return PayrollRecord(
        payroll_id=str(doc["_id"]),
        user_id=str(doc["user_id"]),
        period_start=as_date(doc["period_start"]),
        period_end=as_date(doc["period_end"]),
        pay_date=as_date(doc.get("pay_date") or doc["period_end"]),
        breakdown=PayrollBreakdown(
            basic=float(amounts.get("basic", 0)),
            hra=float(amounts.get("hra", 0)),
            gross=float(amounts.get("gross", 0)),
            provident_fund=float(amounts.get("provident_fund", 0)),
            tax=float(amounts.get("tax", 0)),
            total_deductions=float(amounts.get("total_deductions", 0)),
            net_pay=float(amounts.get("net_pay", 0)),
            period_days=int(amounts.get("period_days", 0)),
        ),
        attendance=AttendanceSnapshot(
            present_days=int(snapshot.get("present_days", 0)),
            absent_days=int(snapshot.get("absent_days", 0)),
            late_days=int(snapshot.get("late_days", 0)),
            total_work_hours=float(snapshot.get("total_work_hours", 0)),
            overtime_hours=float(snapshot.get("overtime_hours", 0)),
        ),
        payment_status=PaymentStatus(doc.get("payment_status", PaymentStatus.PROCESSING.value)),
        notes=doc.get("notes"),
        processed_by=id_str(doc.get("processed_by")),
        paid_at=doc.get("paid_at"),
        created_at=doc.get("created_at"),
    )


def _build_query(filters: PayrollFilter) -> dict:
    query: dict = {}
    if filters.user_id:
        query["user_id"] = to_object_id(filters.user_id, field_name="employee id")
    period = date_range_query(filters.period_from, filters.period_to)
    if period:
        query["period_start"] = period
    if filters.payment_status is not None:
        query["payment_status"] = filters.payment_status.value
    return query


class MongoPayrollRepository(PayrollRepository):
    def __init__(self, db: Database):
        self._payrolls = db[PAYROLLS]

    def create(self, new_payroll: NewPayroll) -> str:
        try:
            result = self._payrolls.insert_one(
                {
                    "user_id": to_object_id(new_payroll.user_id),
                    "period_start": as_datetime(new_payroll.period_start),
                    "period_end": as_datetime(new_payroll.period_end),
                    "pay_date": as_datetime(new_payroll.period_end),
                    "breakdown": new_payroll.breakdown.to_dict(),
                    "attendance_summary": new_payroll.attendance.to_dict(),
                    "payment_status": PaymentStatus.PROCESSING.value,
                    "notes": new_payroll.notes,
                    "processed_by": to_object_id(new_payroll.processed_by),
                    "paid_at": None,
                    "created_at": new_payroll.created_at,
                    "updated_at": new_payroll.created_at,
                }
            )
        except DuplicateKeyError:
            raise ValidationError("Payroll already processed for this period")
        return id_str(result.inserted_id)

    def get_by_id(self, payroll_id: str) -> Optional[PayrollRecord]:
        doc = self._payrolls.find_one({"_id": to_object_id(payroll_id, field_name="payroll id")})
        return payroll_from_doc(doc) if doc else None

    def exists_for_period(self, user_id: str, *, start: date, end: date) -> bool:
        query = {
            "user_id": to_object_id(user_id),
            "period_start": start_of_day(start),
            "period_end": start_of_day(end),
        }
        return self._payrolls.count_documents(query, limit=1) > 0

    def list_records(self, filters: PayrollFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[PayrollRecord], int]:
        query = _build_query(filters)
        total = self._payrolls.count_documents(query)
        cursor = self._payrolls.find(query).sort([("period_start", DESCENDING), ("_id", DESCENDING)]).skip(int(skip))
        if limit:
            cursor = cursor.limit(int(limit))
        return [payroll_from_doc(d) for d in cursor], total

    def find_all(self, filters: PayrollFilter) -> Sequence[PayrollRecord]:
        cursor = self._payrolls.find(_build_query(filters)).sort("period_start", DESCENDING)
        return [payroll_from_doc(d) for d in cursor]

    def update_fields(self, payroll_id: str, fields: dict) -> bool:
        update = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if "payment_status" in update and isinstance(update["payment_status"], PaymentStatus):
            update["payment_status"] = update["payment_status"].value
        if not update:
            return False
        update["updated_at"] = datetime.now()
        result = self._payrolls.update_one({"_id": to_object_id(payroll_id)}, {"$set": update})
        return result.matched_count == 1

    def delete(self, payroll_id: str) -> bool:
        result = self._payrolls.delete_one({"_id": to_object_id(payroll_id)})
        return result.deleted_count == 1
