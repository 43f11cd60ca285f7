from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pymongo import DESCENDING
from pymongo.database import Database

from ..core.enums import ReportType
from ..database.mongo_base import id_str, to_object_id
from .model import NewReport, Report
from .repository import ReportRepository

REPORTS = "reports"


def report_from_doc(doc: dict, *, with_data: bool = True) -> Report:
    return Report(
        report_id=str(doc["_id"]),
        name=doc.get("name", ""),
        report_type=ReportType(doc["report_type"]),
        filters=doc.get("filters") or {},
        summary=doc.get("summary") or {},
        data=(doc.get("data") or []) if with_data else [],
        generated_by=id_str(doc.get("generated_by")),
        generated_at=doc.get("generated_at"),
        access_count=int(doc.get("access_count") or 0),
        last_accessed_at=doc.get("last_accessed_at"),
        record_count=int(doc.get("record_count") or len(doc.get("data") or [])),
    )


class MongoReportRepository(ReportRepository):
    def __init__(self, db: Database):
        self._reports = db[REPORTS]

    def create(self, new_report: NewReport) -> str:
        result = self._reports.insert_one(
            {
                "name": new_report.name,
                "report_type": new_report.report_type.value,
                "filters": dict(new_report.filters),
                "summary": dict(new_report.summary),
                "data": list(new_report.data),
                "record_count": len(new_report.data),
                "generated_by": to_object_id(new_report.generated_by),
                "generated_at": new_report.generated_at,
                "access_count": 0,
                "last_accessed_at": None,
            }
        )
        return id_str(result.inserted_id)

    def get_by_id(self, report_id: str) -> Optional[Report]:
        doc = self._reports.find_one({"_id": to_object_id(report_id, field_name="report id")})
        return report_from_doc(doc) if doc else None

    def list_reports(self, *, report_types: Optional[Sequence[ReportType]] = None) -> Sequence[Report]:
        query: dict = {}
        if report_types is not None:
            query["report_type"] = {"$in": [t.value for t in report_types]}
        cursor = self._reports.find(query, projection={"data": 0}).sort("generated_at", DESCENDING)
        return [report_from_doc(d, with_data=False) for d in cursor]

    def record_access(self, report_id: str, *, at: datetime) -> bool:
        result = self._reports.update_one(
            {"_id": to_object_id(report_id)},
            {"$inc": {"access_count": 1}, "$set": {"last_accessed_at": at}},
        )
        return result.matched_count == 1

    def delete(self, report_id: str) -> bool:
        result = self._reports.delete_one({"_id": to_object_id(report_id)})
        return result.deleted_count == 1
