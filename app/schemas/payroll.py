"""
app/schemas/payroll.py

Request and response schemas for payroll calculators.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class LOPProrationRequest(BaseModel):
    """
    Salary components for one employee and period.

    ``standard_earnings`` are prorated; ``custom_earnings`` are not.
    """

    standard_earnings: dict[str, Decimal]
    custom_earnings: dict[str, Decimal] = Field(default_factory=dict)
    deductions: dict[str, Decimal] = Field(default_factory=dict)
    paid_days: int
    lop_days: int = 0


class LOPProrationResponse(BaseModel):
    working_days: int
    per_day_salary: Decimal
    lop_deduction: Decimal
    standard_total: Decimal
    adjusted_earnings: dict[str, Decimal]
    custom_earnings_total: Decimal
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal


class PerDayRateRequest(BaseModel):
    monthly_total: Decimal
    days_in_period: int


class PerDayRateResponse(BaseModel):
    monthly_total: Decimal
    days_in_period: int
    per_day_rate: Decimal
