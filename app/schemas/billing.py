"""
app/schemas/billing.py

Request and response schemas for subscription and invoice calculators.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class SubscriptionQuoteRequest(BaseModel):
    pricing_mode: str = "standard"
    billing_cycle: str = "monthly"
    base_rate: Decimal | None = None
    role_rates: dict[str, Decimal] = Field(default_factory=dict)
    role_limits: dict[str, int] = Field(default_factory=dict)
    tax_percentage: Decimal | None = None


class QuoteLineItem(BaseModel):
    description: str
    quantity: int
    rate: Decimal
    amount: Decimal


class SubscriptionQuoteResponse(BaseModel):
    total_users: int
    multiplier: int
    monthly_subtotal: Decimal
    subtotal: Decimal
    tax_percentage: Decimal
    tax_amount: Decimal
    total: Decimal
    line_items: list[QuoteLineItem] = Field(default_factory=list)


class InvoiceItem(BaseModel):
    description: str | None = None
    amount: Decimal
    tax_percentage: Decimal | None = None
    tax_value: Decimal | None = None


class InvoiceTotalsRequest(BaseModel):
    items: list[InvoiceItem] = Field(default_factory=list)
    tds_amount: Decimal = Decimal("0")
    tcs_amount: Decimal = Decimal("0")


class InvoiceTotalsResponse(BaseModel):
    subtotal: Decimal
    total_tax: Decimal
    tax_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    adjustment: Decimal
    grand_total: Decimal
