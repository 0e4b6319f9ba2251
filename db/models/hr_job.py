"""
db/models/hr_job.py

Requisitions and the candidates submitted against them.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class HRJob(Base, TimestampMixin):
    """
    A job requisition owned by a client.

    ``assigned_to`` mirrors the application payload
    ``{"id": "<id>,<id>", "name": "<name>,<name>", "type": "individual"}``;
    ids and names are comma-separated and positionally aligned.
    """

    __tablename__ = "hr_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client_owner: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Client company the requisition belongs to",
    )
    assigned_to: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_hr_jobs_organization_id", "organization_id"),
        Index("ix_hr_jobs_created_at", "created_at"),
    )


class HRJobCandidate(Base, TimestampMixin):
    """
    A candidate attached to one requisition, sourced by one recruiter.
    """

    __tablename__ = "hr_job_candidates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("hr_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    recruiter_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name of the employee who sourced the candidate",
    )

    __table_args__ = (Index("ix_hr_job_candidates_job_id", "job_id"),)
