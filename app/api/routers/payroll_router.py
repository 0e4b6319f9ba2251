"""
app/api/routers/payroll_router.py

Payroll calculator endpoints.

POST /payroll/lop-proration  loss-of-pay proration for one payslip
POST /payroll/per-day-rate   monthly total divided by days in period
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_money_policy, to_http_exception
from app.errors import ReportValidationError
from app.schemas.payroll import (
    LOPProrationRequest,
    LOPProrationResponse,
    PerDayRateRequest,
    PerDayRateResponse,
)
from app.validators.report_validator import validate_lop_inputs, validate_per_day_inputs
from metrics.money import MoneyPolicy
from metrics.payroll import LOPProrationFormula, PerDayRateFormula

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post("/lop-proration", response_model=LOPProrationResponse)
def lop_proration(
    body: LOPProrationRequest,
    policy: MoneyPolicy = Depends(get_money_policy),
) -> LOPProrationResponse:
    try:
        validate_lop_inputs(
            standard_earnings=body.standard_earnings,
            custom_earnings=body.custom_earnings,
            deductions=body.deductions,
            paid_days=body.paid_days,
            lop_days=body.lop_days,
        )
    except ReportValidationError as exc:
        raise to_http_exception(exc) from exc

    return LOPProrationResponse(**LOPProrationFormula(policy).calculate(body.model_dump()))


@router.post("/per-day-rate", response_model=PerDayRateResponse)
def per_day_rate(
    body: PerDayRateRequest,
    policy: MoneyPolicy = Depends(get_money_policy),
) -> PerDayRateResponse:
    try:
        validate_per_day_inputs(monthly_total=body.monthly_total, days_in_period=body.days_in_period)
    except ReportValidationError as exc:
        raise to_http_exception(exc) from exc

    return PerDayRateResponse(**PerDayRateFormula(policy).calculate(body.model_dump()))
