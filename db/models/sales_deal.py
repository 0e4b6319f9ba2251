"""
db/models/sales_deal.py

CRM deals and the revenue targets they are measured against.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class DealStatus:
    OPEN = "Open"
    WON = "Won"
    LOST = "Lost"


class SalesDeal(Base, TimestampMixin):
    __tablename__ = "sales_deals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    stage: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Prospecting, Qualification, Proposal, Negotiation, Closed Won, Closed Lost",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=DealStatus.OPEN,
        comment="Open, Won, Lost",
    )
    deal_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    deal_owner: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    actual_close_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_sales_deals_organization_id", "organization_id"),
        Index("ix_sales_deals_status", "status"),
        Index("ix_sales_deals_org_created_at", "organization_id", "created_at"),
    )


class SalesTarget(Base, TimestampMixin):
    """
    Revenue target for one owner (or the whole team when ``owner_name`` is
    null) over a period window.
    """

    __tablename__ = "sales_targets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    target_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_sales_targets_organization_id", "organization_id"),
    )
