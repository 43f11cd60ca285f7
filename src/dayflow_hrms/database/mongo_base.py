from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from ..common.datetime_utils import start_of_day
from ..core.exceptions import ValidationError


def to_object_id(value: Any, *, field_name: str = "id") -> ObjectId:
    """Convert a string id into ObjectId; malformed ids are a client error."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")


def id_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def as_date(value: Any) -> Optional[date]:
    """BSON has no date type; calendar dates come back as midnight datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def as_datetime(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return start_of_day(value)


def date_range_query(start: Optional[date], end: Optional[date]) -> Optional[dict]:
    query: dict = {}
    if start is not None:
        query["$gte"] = start_of_day(start)
    if end is not None:
        query["$lte"] = start_of_day(end)
    return query or None


def page_window(page: int, limit: int) -> tuple[int, int]:
    """Return (skip, limit) for 1-based page numbers."""
    page = max(int(page or 1), 1)
    limit = max(int(limit or 1), 1)
    return (page - 1) * limit, limit
