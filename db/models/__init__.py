"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.credit_transaction import VerificationCreditTransaction
from db.models.hr_job import HRJob, HRJobCandidate
from db.models.job_status import JobStatus
from db.models.sales_deal import SalesDeal, SalesTarget
from db.models.status_change_count import StatusChangeCount

__all__ = [
    "JobStatus",
    "HRJob",
    "HRJobCandidate",
    "StatusChangeCount",
    "SalesDeal",
    "SalesTarget",
    "VerificationCreditTransaction",
]
