"""
db/models/status_change_count.py

Event log of candidate status transitions, the source of every
recruitment report.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class StatusChangeCount(Base, TimestampMixin):
    """
    One (candidate, job, main status, sub status) transition.

    ``count`` is the number of times the transition was recorded; reports sum
    it rather than counting rows.
    """

    __tablename__ = "hr_status_change_counts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    candidate_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hr_job_candidates.id", ondelete="CASCADE"),
        nullable=True,
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hr_jobs.id", ondelete="CASCADE"),
        nullable=True,
    )
    main_status_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("job_statuses.id"),
        nullable=True,
    )
    sub_status_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("job_statuses.id"),
        nullable=True,
    )
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_hr_status_change_counts_organization_id", "organization_id"),
        Index("ix_hr_status_change_counts_created_at", "created_at"),
        Index(
            "ix_hr_status_change_counts_org_created_at",
            "organization_id",
            "created_at",
        ),
    )
