from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import NewPayroll, PayrollFilter, PayrollRecord


class PayrollRepository(Protocol):
    def create(self, new_payroll: NewPayroll) -> str:
        """Insert a record; raises ValidationError if the period already exists for the user."""

        raise NotImplementedError

    def get_by_id(self, payroll_id: str) -> Optional[PayrollRecord]:
        raise NotImplementedError

    def exists_for_period(self, user_id: str, *, start: date, end: date) -> bool:
        raise NotImplementedError

    def list_records(self, filters: PayrollFilter, *, skip: int = 0, limit: int = 0) -> tuple[Sequence[PayrollRecord], int]:
        raise NotImplementedError

    def find_all(self, filters: PayrollFilter) -> Sequence[PayrollRecord]:
        raise NotImplementedError

    def update_fields(self, payroll_id: str, fields: dict) -> bool:
        raise NotImplementedError

    def delete(self, payroll_id: str) -> bool:
        raise NotImplementedError
