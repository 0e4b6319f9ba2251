"""
metrics/payroll.py

Payroll formula implementations: loss-of-pay proration and per-day rate.

Expected inputs (LOPProrationFormula)
-------------------------------------
standard_earnings : dict[str, Decimal]
    Prorated components in display order (``basic``, ``hra``,
    ``conveyance``, ``fixed_allowance``).
custom_earnings : dict[str, Decimal]
    One-off earnings, never prorated.
deductions : dict[str, Decimal]
    Statutory and other deductions (``epf``, ``income_tax``,
    ``professional_tax``, ``loan``) plus custom deductions.
paid_days : int
    Days paid in the period.
lop_days : int
    Loss-of-pay days in the period.

Formulas
--------
Working Days    = paid_days + lop_days
Per Day Salary  = standard_total / working_days
LOP Deduction   = per_day_salary * lop_days
Adjusted c      = c - lop_deduction * (c / standard_total)   for each standard c
Gross Earnings  = sum(adjusted standard) + sum(custom_earnings)
Total Deductions= sum(deductions)
Net Pay         = gross_earnings - total_deductions

Proration only applies when lop_days > 0, paid_days > 0 and the standard
total is positive; otherwise the components pass through unchanged.
Arithmetic is carried at full Decimal precision and only outputs are
quantised.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from metrics.base import BaseMetricFormula, to_decimal
from metrics.money import MoneyPolicy


class LOPProrationFormula(BaseMetricFormula):
    """
    Distributes a loss-of-pay deduction proportionally across the standard
    earning components.
    """

    def __init__(self, policy: MoneyPolicy | None = None) -> None:
        self._policy = policy or MoneyPolicy()

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute adjusted components, LOP deduction, gross, deductions and net.

        Parameters
        ----------
        inputs:
            Dictionary containing the keys listed in the module docstring.

        Returns
        -------
        dict
            Keys: ``working_days``, ``per_day_salary``, ``lop_deduction``,
            ``standard_total``, ``adjusted_earnings``, ``custom_earnings_total``,
            ``gross_earnings``, ``total_deductions``, ``net_pay``.
        """
        standard = {name: to_decimal(v) for name, v in inputs["standard_earnings"].items()}
        custom = {name: to_decimal(v) for name, v in inputs.get("custom_earnings", {}).items()}
        deductions = {name: to_decimal(v) for name, v in inputs.get("deductions", {}).items()}
        paid_days = int(inputs["paid_days"])
        lop_days = int(inputs.get("lop_days", 0))

        standard_total = sum(standard.values(), Decimal("0"))
        working_days = paid_days + lop_days
        per_day = _per_day_salary(standard_total, working_days)

        if lop_days > 0 and paid_days > 0 and standard_total > 0:
            lop_deduction = per_day * lop_days
            adjusted = {
                name: _prorate(amount, lop_deduction, standard_total)
                for name, amount in standard.items()
            }
        else:
            lop_deduction = Decimal("0")
            adjusted = dict(standard)

        custom_total = sum(custom.values(), Decimal("0"))
        gross = sum(adjusted.values(), Decimal("0")) + custom_total
        total_deductions = sum(deductions.values(), Decimal("0"))
        net = gross - total_deductions

        q = self._policy.quantize
        return {
            "working_days": working_days,
            "per_day_salary": q(per_day),
            "lop_deduction": q(lop_deduction),
            "standard_total": q(standard_total),
            "adjusted_earnings": {name: q(v) for name, v in adjusted.items()},
            "custom_earnings_total": q(custom_total),
            "gross_earnings": q(gross),
            "total_deductions": q(total_deductions),
            "net_pay": q(net),
        }


class PerDayRateFormula(BaseMetricFormula):
    """Per-day rate = monthly_total / days_in_period, 0 when days is 0."""

    def __init__(self, policy: MoneyPolicy | None = None) -> None:
        self._policy = policy or MoneyPolicy()

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        monthly_total = to_decimal(inputs["monthly_total"])
        days = int(inputs["days_in_period"])
        return {
            "monthly_total": self._policy.quantize(monthly_total),
            "days_in_period": days,
            "per_day_rate": self._policy.quantize(_per_day_salary(monthly_total, days)),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _per_day_salary(standard_total: Decimal, working_days: int) -> Decimal:
    """
    Per Day Salary = standard_total / working_days.

    Returns 0 when working_days is zero.
    """
    if working_days <= 0:
        return Decimal("0")
    return standard_total / Decimal(working_days)


def _prorate(component: Decimal, lop_deduction: Decimal, standard_total: Decimal) -> Decimal:
    """Adjusted = component - lop_deduction * (component / standard_total)."""
    return component - lop_deduction * (component / standard_total)
