from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..attendance.model import AttendanceFilter, AttendanceSummary
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.validators import require_choice, require_date_order, require_max_length, require_non_negative_number
from ..core.constants import MAX_NOTES_LENGTH
from ..core.enums import PaymentStatus, Role, STAFF_ROLES
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import AuthUser, User
from ..users.repository import UserRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import AttendanceSnapshot, NewPayroll, PayrollBreakdown, PayrollFilter, PayrollRecord, PayrollTotals
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

PAYROLL_ROLES = frozenset({Role.ADMIN, Role.PAYROLL_OFFICER})

DUPLICATE_PERIOD = "Payroll already processed for this period"


@dataclass(frozen=True)
class PayrollPage:
    items: Sequence[PayrollRecord]
    total: int
    summary: PayrollTotals


@dataclass(frozen=True)
class BulkResult:
    created: Sequence[PayrollRecord] = field(default_factory=list)
    skipped: Sequence[dict] = field(default_factory=list)


class PayrollService:
    """Payroll generation and administration on top of a PayrollCalculator."""

    def __init__(
        self,
        payrolls: PayrollRepository,
        users: UserRepository,
        attendance: AttendanceRepository,
        *,
        calculator: Optional[PayrollCalculator] = None,
    ):
        self._payrolls = payrolls
        self._users = users
        self._attendance = attendance
        self._calculator = calculator or StandardPayrollCalculator()

    def calculate(self, basic_salary: float, *, period_days: int = 0) -> PayrollBreakdown:
        return self._calculator.calculate(basic_salary, period_days=period_days)

    @staticmethod
    def _require_payroll_role(actor: AuthUser) -> None:
        if actor.role not in PAYROLL_ROLES:
            raise AuthorizationError("You do not have permission to manage payroll")

    def _load(self, payroll_id: str) -> PayrollRecord:
        record = self._payrolls.get_by_id(payroll_id)
        if not record:
            raise NotFoundError("Payroll record not found")
        return record

    def _snapshot(self, user_id: str, start: date, end: date) -> AttendanceSnapshot:
        summary = AttendanceSummary.from_records(
            self._attendance.find_all(AttendanceFilter(user_id=user_id, start=start, end=end))
        )
        return AttendanceSnapshot(
            present_days=summary.present_days,
            absent_days=summary.absent_days,
            late_days=summary.late_days,
            total_work_hours=summary.total_work_hours,
            overtime_hours=summary.total_overtime_hours,
        )

    def _create_for(
        self,
        actor: AuthUser,
        user: User,
        *,
        start: date,
        end: date,
        basic_salary: float,
        notes: Optional[str],
        now: datetime,
    ) -> PayrollRecord:
        breakdown = self.calculate(basic_salary, period_days=(end - start).days + 1)
        payroll_id = self._payrolls.create(
            NewPayroll(
                user_id=user.user_id,
                period_start=start,
                period_end=end,
                breakdown=breakdown,
                attendance=self._snapshot(user.user_id, start, end),
                processed_by=actor.user_id,
                notes=notes,
                created_at=now,
            )
        )
        logger.info(
            "Payroll %s generated for %s (%s..%s, net %.2f)",
            payroll_id,
            user.email,
            start.isoformat(),
            end.isoformat(),
            breakdown.net_pay,
        )
        return self._load(payroll_id)

    def generate(
        self,
        actor: AuthUser,
        *,
        employee_id: str,
        start: date,
        end: date,
        basic_salary=None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PayrollRecord:
        self._require_payroll_role(actor)
        require_date_order(start, end, message="Pay period end must be on or after its start")
        require_max_length(notes, "Notes", MAX_NOTES_LENGTH)

        user = self._users.get_by_id(employee_id)
        if not user:
            raise NotFoundError("Employee not found")
        if self._payrolls.exists_for_period(employee_id, start=start, end=end):
            raise ValidationError(DUPLICATE_PERIOD)

        basic = user.salary if basic_salary is None else require_non_negative_number(basic_salary, "Basic salary")
        return self._create_for(actor, user, start=start, end=end, basic_salary=basic, notes=notes, now=now or now_local())

    def generate_all(self, actor: AuthUser, *, start: date, end: date, now: Optional[datetime] = None) -> BulkResult:
        """Generate the period for every active employee with a salary."""
        self._require_payroll_role(actor)
        require_date_order(start, end, message="Pay period end must be on or after its start")
        now = now or now_local()

        created: list[PayrollRecord] = []
        skipped: list[dict] = []
        for user in self._users.list_active():
            if user.salary <= 0:
                skipped.append({"employee_id": user.user_id, "reason": "No salary configured"})
                continue
            if self._payrolls.exists_for_period(user.user_id, start=start, end=end):
                skipped.append({"employee_id": user.user_id, "reason": DUPLICATE_PERIOD})
                continue
            created.append(
                self._create_for(actor, user, start=start, end=end, basic_salary=user.salary, notes=None, now=now)
            )

        logger.info("Bulk payroll %s..%s: %d created, %d skipped", start, end, len(created), len(skipped))
        return BulkResult(created=created, skipped=skipped)

    def list_records(self, actor: AuthUser, filters: PayrollFilter, *, skip: int = 0, limit: int = 0) -> PayrollPage:
        if actor.role not in STAFF_ROLES:
            filters = PayrollFilter(
                user_id=actor.user_id,
                period_from=filters.period_from,
                period_to=filters.period_to,
                payment_status=filters.payment_status,
            )
        items, total = self._payrolls.list_records(filters, skip=skip, limit=limit)
        return PayrollPage(items=items, total=total, summary=PayrollTotals.from_records(self._payrolls.find_all(filters)))

    def get_record(self, actor: AuthUser, payroll_id: str) -> PayrollRecord:
        record = self._load(payroll_id)
        if actor.role not in STAFF_ROLES and record.user_id != actor.user_id:
            raise AuthorizationError("You can only view your own payroll")
        return record

    def payslips(self, actor: AuthUser, employee_id: str) -> Sequence[PayrollRecord]:
        if actor.role not in STAFF_ROLES and actor.user_id != employee_id:
            raise AuthorizationError("You can only view your own payslips")
        return self._payrolls.find_all(PayrollFilter(user_id=employee_id))

    def update_record(
        self,
        actor: AuthUser,
        payroll_id: str,
        *,
        payment_status=None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PayrollRecord:
        """Administrative edit; computed amounts never change after generation."""
        self._require_payroll_role(actor)
        record = self._load(payroll_id)

        update: dict = {}
        if payment_status is not None:
            status = require_choice(payment_status, PaymentStatus, "payment_status")
            update["payment_status"] = status
            if status == PaymentStatus.PAID and record.paid_at is None:
                update["paid_at"] = now or now_local()
        if notes is not None:
            update["notes"] = require_max_length(notes, "Notes", MAX_NOTES_LENGTH)
        if not update:
            raise ValidationError("Nothing to update (payment_status or notes)")

        self._payrolls.update_fields(payroll_id, update)
        logger.info("%s updated payroll %s (%s)", actor.email, payroll_id, ", ".join(sorted(update)))
        return self._load(payroll_id)

    def delete_record(self, actor: AuthUser, payroll_id: str) -> None:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only administrators can delete payroll records")
        self._load(payroll_id)
        self._payrolls.delete(payroll_id)
        logger.info("%s deleted payroll %s", actor.email, payroll_id)

    def stats(self, actor: AuthUser, *, year: int, month: int) -> dict:
        self._require_payroll_role(actor)
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        first, last = month_bounds(year, month)
        totals = PayrollTotals.from_records(self._payrolls.find_all(PayrollFilter(period_from=first, period_to=last)))
        return {
            "year": year,
            "month": month,
            "active_employees": len(self._users.list_active()),
            **totals.to_dict(),
        }
