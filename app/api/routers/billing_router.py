"""
app/api/routers/billing_router.py

Subscription and invoice calculator endpoints.

POST /billing/subscription-quote  seats x rate x cycle, plus tax
POST /billing/invoice-totals      subtotal, tax breakdown, TDS / TCS, grand total
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_money_policy, to_http_exception
from app.errors import ReportValidationError
from app.schemas.billing import (
    InvoiceTotalsRequest,
    InvoiceTotalsResponse,
    SubscriptionQuoteRequest,
    SubscriptionQuoteResponse,
)
from app.validators.report_validator import validate_invoice_inputs, validate_subscription_inputs
from metrics.billing import InvoiceTotalsFormula, SubscriptionQuoteFormula
from metrics.money import MoneyPolicy

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/subscription-quote", response_model=SubscriptionQuoteResponse)
def subscription_quote(
    body: SubscriptionQuoteRequest,
    policy: MoneyPolicy = Depends(get_money_policy),
) -> SubscriptionQuoteResponse:
    """
    Quote one billing cycle. ``tax_percentage`` defaults to the configured
    rate when omitted.
    """
    try:
        validate_subscription_inputs(
            pricing_mode=body.pricing_mode,
            billing_cycle=body.billing_cycle,
            base_rate=body.base_rate,
            role_rates=body.role_rates,
            role_limits=body.role_limits,
        )
    except ReportValidationError as exc:
        raise to_http_exception(exc) from exc

    quote = SubscriptionQuoteFormula(policy).calculate(body.model_dump(exclude_none=True))
    return SubscriptionQuoteResponse(**quote)


@router.post("/invoice-totals", response_model=InvoiceTotalsResponse)
def invoice_totals(
    body: InvoiceTotalsRequest,
    policy: MoneyPolicy = Depends(get_money_policy),
) -> InvoiceTotalsResponse:
    inputs = body.model_dump()
    try:
        validate_invoice_inputs(
            items=inputs["items"],
            tds_amount=body.tds_amount,
            tcs_amount=body.tcs_amount,
        )
    except ReportValidationError as exc:
        raise to_http_exception(exc) from exc

    return InvoiceTotalsResponse(**InvoiceTotalsFormula(policy).calculate(inputs))
