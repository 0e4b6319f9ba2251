"""
db/models/job_status.py

Pipeline status catalogue: main statuses and the sub-statuses beneath them.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class JobStatusType:
    MAIN = "main"
    SUB = "sub"


class JobStatus(Base, TimestampMixin):
    """
    One node of the two-level candidate status tree.

    Main statuses (``Processed``, ``Interview``, ``Offered``, ``Joined``) have
    no parent; sub-statuses point at their main status through ``parent_id``.
    """

    __tablename__ = "job_statuses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="main or sub",
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("job_statuses.id", ondelete="CASCADE"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_job_statuses_organization_id", "organization_id"),
        Index("ix_job_statuses_parent_id", "parent_id"),
    )

    def __repr__(self) -> str:
        return f"<JobStatus id={self.id} name={self.name!r} type={self.type!r}>"
