from __future__ import annotations

from ...core.constants import HRA_RATE, PF_RATE, TAX_RATE
from ...core.exceptions import ValidationError
from ..model import PayrollBreakdown
from .base import PayrollCalculator


def _money(value: float) -> float:
    return round(value, 2)


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: HRA 40% of basic, PF 12% of basic, tax 10% of gross.

    Provident fund is reported as a contribution; it only reduces net pay
    when deduct_pf is set. The period length is recorded, not prorated.

    deduct_pf defaults to False to match the published payslip example:
    basic 50000 gives HRA 20000, gross 70000, tax 7000 and net 63000,
    with PF 6000 shown but not subtracted.
    """

    def __init__(
        self,
        *,
        deduct_pf: bool = False,
        hra_rate: float = HRA_RATE,
        pf_rate: float = PF_RATE,
        tax_rate: float = TAX_RATE,
    ):
        self.deduct_pf = bool(deduct_pf)
        self._hra_rate = hra_rate
        self._pf_rate = pf_rate
        self._tax_rate = tax_rate

    def calculate(self, basic_salary: float, *, period_days: int = 0) -> PayrollBreakdown:
        basic = float(basic_salary)
        if basic < 0:
            raise ValidationError("Basic salary cannot be negative")

        hra = basic * self._hra_rate
        gross = basic + hra
        pf = basic * self._pf_rate
        tax = gross * self._tax_rate
        deductions = tax + pf if self.deduct_pf else tax

        return PayrollBreakdown(
            basic=_money(basic),
            hra=_money(hra),
            gross=_money(gross),
            provident_fund=_money(pf),
            tax=_money(tax),
            total_deductions=_money(deductions),
            net_pay=_money(gross - deductions),
            period_days=int(period_days),
        )
