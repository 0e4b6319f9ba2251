"""
db/models/credit_transaction.py

Verification credit ledger: usage debits and top-up credits per organization.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CreditTransactionType:
    USAGE = "usage"
    TOPUP = "topup"


class VerificationCreditTransaction(Base, TimestampMixin):
    """
    One ledger entry. Usage amounts are stored negative; reports use the
    absolute value as cost.
    """

    __tablename__ = "verification_credit_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    transaction_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="usage or topup",
    )
    verification_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        Index("ix_verification_credit_transactions_organization_id", "organization_id"),
        Index(
            "ix_verification_credit_transactions_org_created_at",
            "organization_id",
            "created_at",
        ),
    )
