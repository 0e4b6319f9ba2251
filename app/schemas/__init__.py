"""
app/schemas package marker.
"""

from app.schemas.billing import (
    InvoiceTotalsRequest,
    InvoiceTotalsResponse,
    SubscriptionQuoteRequest,
    SubscriptionQuoteResponse,
)
from app.schemas.payroll import (
    LOPProrationRequest,
    LOPProrationResponse,
    PerDayRateRequest,
    PerDayRateResponse,
)
from app.schemas.reports import (
    EmailReportRequest,
    EmailReportResponse,
    ReportDescriptor,
    ReportListResponse,
    ReportResponse,
)

__all__ = [
    "EmailReportRequest",
    "EmailReportResponse",
    "InvoiceTotalsRequest",
    "InvoiceTotalsResponse",
    "LOPProrationRequest",
    "LOPProrationResponse",
    "PerDayRateRequest",
    "PerDayRateResponse",
    "ReportDescriptor",
    "ReportListResponse",
    "ReportResponse",
    "SubscriptionQuoteRequest",
    "SubscriptionQuoteResponse",
]
