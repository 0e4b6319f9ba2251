"""create job_statuses, hr_jobs, hr_job_candidates, hr_status_change_counts,
sales_deals, sales_targets, verification_credit_transactions

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # ---------------------------------------------------------------------------
    # job_statuses
    # Self-referencing FK: sub-status → main status.
    # ---------------------------------------------------------------------------
    op.create_table(
        "job_statuses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, comment="main or sub"),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["parent_id"], ["job_statuses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_job_statuses_organization_id", "job_statuses", ["organization_id"])
    op.create_index("ix_job_statuses_parent_id", "job_statuses", ["parent_id"])

    # ---------------------------------------------------------------------------
    # hr_jobs
    # ---------------------------------------------------------------------------
    op.create_table(
        "hr_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "client_owner",
            sa.String(length=255),
            nullable=True,
            comment="Client company the requisition belongs to",
        ),
        sa.Column("assigned_to", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_hr_jobs_organization_id", "hr_jobs", ["organization_id"])
    op.create_index("ix_hr_jobs_created_at", "hr_jobs", ["created_at"])

    # ---------------------------------------------------------------------------
    # hr_job_candidates
    # FK → hr_jobs.id ON DELETE CASCADE
    # ---------------------------------------------------------------------------
    op.create_table(
        "hr_job_candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "recruiter_name",
            sa.String(length=255),
            nullable=True,
            comment="Display name of the employee who sourced the candidate",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["job_id"], ["hr_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_hr_job_candidates_job_id", "hr_job_candidates", ["job_id"])

    # ---------------------------------------------------------------------------
    # hr_status_change_counts
    # FK → hr_job_candidates, hr_jobs, job_statuses (main and sub)
    # ---------------------------------------------------------------------------
    op.create_table(
        "hr_status_change_counts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("candidate_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("main_status_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sub_status_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["candidate_id"], ["hr_job_candidates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_id"], ["hr_jobs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["main_status_id"], ["job_statuses.id"]),
        sa.ForeignKeyConstraint(["sub_status_id"], ["job_statuses.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_hr_status_change_counts_organization_id",
        "hr_status_change_counts",
        ["organization_id"],
    )
    op.create_index(
        "ix_hr_status_change_counts_created_at",
        "hr_status_change_counts",
        ["created_at"],
    )
    op.create_index(
        "ix_hr_status_change_counts_org_created_at",
        "hr_status_change_counts",
        ["organization_id", "created_at"],
    )

    # ---------------------------------------------------------------------------
    # sales_deals
    # ---------------------------------------------------------------------------
    op.create_table(
        "sales_deals",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "stage",
            sa.String(length=64),
            nullable=True,
            comment="Prospecting, Qualification, Proposal, Negotiation, Closed Won, Closed Lost",
        ),
        sa.Column("status", sa.String(length=16), nullable=False, comment="Open, Won, Lost"),
        sa.Column("deal_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("deal_owner", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("actual_close_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_deals_organization_id", "sales_deals", ["organization_id"])
    op.create_index("ix_sales_deals_status", "sales_deals", ["status"])
    op.create_index("ix_sales_deals_org_created_at", "sales_deals", ["organization_id", "created_at"])

    # ---------------------------------------------------------------------------
    # sales_targets
    # ---------------------------------------------------------------------------
    op.create_table(
        "sales_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("target_revenue", sa.Numeric(14, 2), nullable=False),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_targets_organization_id", "sales_targets", ["organization_id"])

    # ---------------------------------------------------------------------------
    # verification_credit_transactions
    # ---------------------------------------------------------------------------
    op.create_table(
        "verification_credit_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False, comment="usage or topup"),
        sa.Column("verification_type", sa.String(length=64), nullable=True),
        sa.Column("source", sa.String(length=64), nullable=True),
        sa.Column("balance_after", sa.Numeric(14, 2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_verification_credit_transactions_organization_id",
        "verification_credit_transactions",
        ["organization_id"],
    )
    op.create_index(
        "ix_verification_credit_transactions_org_created_at",
        "verification_credit_transactions",
        ["organization_id", "created_at"],
    )


def downgrade() -> None:
    # Drop in strict reverse dependency order.

    op.drop_index(
        "ix_verification_credit_transactions_org_created_at",
        table_name="verification_credit_transactions",
    )
    op.drop_index(
        "ix_verification_credit_transactions_organization_id",
        table_name="verification_credit_transactions",
    )
    op.drop_table("verification_credit_transactions")

    op.drop_index("ix_sales_targets_organization_id", table_name="sales_targets")
    op.drop_table("sales_targets")

    op.drop_index("ix_sales_deals_org_created_at", table_name="sales_deals")
    op.drop_index("ix_sales_deals_status", table_name="sales_deals")
    op.drop_index("ix_sales_deals_organization_id", table_name="sales_deals")
    op.drop_table("sales_deals")

    op.drop_index("ix_hr_status_change_counts_org_created_at", table_name="hr_status_change_counts")
    op.drop_index("ix_hr_status_change_counts_created_at", table_name="hr_status_change_counts")
    op.drop_index("ix_hr_status_change_counts_organization_id", table_name="hr_status_change_counts")
    op.drop_table("hr_status_change_counts")

    op.drop_index("ix_hr_job_candidates_job_id", table_name="hr_job_candidates")
    op.drop_table("hr_job_candidates")

    op.drop_index("ix_hr_jobs_created_at", table_name="hr_jobs")
    op.drop_index("ix_hr_jobs_organization_id", table_name="hr_jobs")
    op.drop_table("hr_jobs")

    op.drop_index("ix_job_statuses_parent_id", table_name="job_statuses")
    op.drop_index("ix_job_statuses_organization_id", table_name="job_statuses")
    op.drop_table("job_statuses")
