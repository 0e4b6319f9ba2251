"""
app/domain/records.py

Closed record schemas produced by the row fetcher.

Each report family has its own frozen record type; the reducer and the
metric formulas only ever see these shapes. Every field is hashable so a
tuple of records can key the shaping cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Union


@dataclass(frozen=True)
class StatusChangeRecord:
    """
    One candidate status transition joined with its job, client and recruiter.

    ``client_name`` / ``recruiter_name`` are ``None`` when the related row is
    missing; the fetcher records a partial-data warning for those.
    """

    candidate_id: str
    job_id: str | None
    client_name: str | None
    recruiter_name: str | None
    main_status: str
    sub_status: str
    count: int
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def status_label(self) -> str:
        return f"{self.main_status} - {self.sub_status}"

    @property
    def effective_at(self) -> datetime:
        return self.updated_at or self.created_at


@dataclass(frozen=True)
class DealRecord:
    """One CRM deal."""

    deal_id: str
    owner_name: str | None
    stage: str | None
    status: str
    deal_value: Decimal
    created_at: datetime
    closed_at: datetime | None = None


@dataclass(frozen=True)
class CreditTransactionRecord:
    """One verification credit ledger entry."""

    transaction_id: str
    organization_id: str
    amount: Decimal
    transaction_type: str
    verification_type: str | None
    source: str | None
    balance_after: Decimal
    created_at: datetime

    @property
    def is_usage(self) -> bool:
        return self.transaction_type == "usage"

    @property
    def cost(self) -> Decimal:
        """Absolute spend for usage rows, the credited amount for top-ups."""
        return abs(self.amount) if self.is_usage else self.amount


RawRecord = Union[StatusChangeRecord, DealRecord, CreditTransactionRecord]


@dataclass(frozen=True)
class FetchResult:
    """
    Materialised output of one fetch.

    Attributes
    ----------
    records:
        Validated records in query order.
    skipped_rows:
        Rows dropped at the boundary because a mandatory field was missing.
    warnings:
        Partial-data warnings collected while converting rows.
    extras:
        Auxiliary lookups a report needs besides its records (status
        catalogue, jobs assigned per recruiter, sales targets), stored as
        ``(name, value)`` pairs so the result stays hashable.
    """

    records: tuple[RawRecord, ...] = ()
    skipped_rows: int = 0
    warnings: tuple[Any, ...] = ()
    extras: tuple[tuple[str, Any], ...] = field(default_factory=tuple)

    def extra(self, name: str, default: Any = None) -> Any:
        for key, value in self.extras:
            if key == name:
                return value
        return default
