"""
app/domain package marker.
"""

from app.domain.records import (
    CreditTransactionRecord,
    DealRecord,
    FetchResult,
    RawRecord,
    StatusChangeRecord,
)
from app.domain.report import (
    Accumulator,
    ColumnSpec,
    MetricRow,
    ReportQuery,
    ReportResult,
)

__all__ = [
    "Accumulator",
    "ColumnSpec",
    "CreditTransactionRecord",
    "DealRecord",
    "FetchResult",
    "MetricRow",
    "RawRecord",
    "ReportQuery",
    "ReportResult",
    "StatusChangeRecord",
]
