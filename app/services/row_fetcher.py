"""
app/services/row_fetcher.py

Read layer for the report pipeline.

Issues one filtered SELECT per report family and converts every row into
the closed record schema for that family (see ``app/domain/records.py``).

Query design
------------
- Every public method issues a single statement (the status catalogue and
  the target lookup are separate, clearly bounded reads).
- Related entities (job, client, recruiter, status names) are OUTER joined so
  a dangling reference never hides the change row; it surfaces as a
  partial-data warning and a ``None`` field that the reducer buckets under
  ``Unknown``.
- Rows missing a mandatory field (entity id, categorical key, timestamp) are
  skipped at this boundary, logged, and counted in ``skipped_rows``.
- Results are fully materialised; there is no pagination. A fetch that
  would exceed ``ReportSettings.max_rows`` fails instead of truncating.

Failure contract
----------------
Any ``SQLAlchemyError`` (unreachable database, bad filter, statement
timeout) is wrapped into a single :class:`~app.errors.FetchError`.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, and_, or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from app.config import ReportSettings, get_report_settings
from app.domain.records import (
    CreditTransactionRecord,
    DealRecord,
    FetchResult,
    StatusChangeRecord,
)
from app.errors import FetchError, PartialDataWarning
from db.models.credit_transaction import CreditTransactionType, VerificationCreditTransaction
from db.models.hr_job import HRJob, HRJobCandidate
from db.models.job_status import JobStatus, JobStatusType
from db.models.sales_deal import SalesDeal, SalesTarget
from db.models.status_change_count import StatusChangeCount

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Unassigned"

_TRANSACTION_TYPES = frozenset({CreditTransactionType.USAGE, CreditTransactionType.TOPUP})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite returns naive values)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _split_csv(value: Any) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


class _WarningCollector:
    """Collects one warning per (entity, reference) pair."""

    def __init__(self) -> None:
        self._seen: dict[tuple[str, str], PartialDataWarning] = {}

    def add(self, entity: str, reference: Any, message: str) -> None:
        key = (entity, str(reference))
        if key not in self._seen:
            self._seen[key] = PartialDataWarning(entity=entity, reference=str(reference), message=message)

    def as_tuple(self) -> tuple[PartialDataWarning, ...]:
        return tuple(self._seen.values())


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class RowFetcher:
    """
    Reads report rows for one request.

    All methods are read-only and never mutate session state beyond the
    transaction-local statement timeout.

    Parameters
    ----------
    session:
        Active SQLAlchemy session. The caller controls its lifecycle.
    settings:
        Timeout and row ceiling; defaults to the cached environment settings.
    """

    def __init__(self, session: Session, settings: ReportSettings | None = None) -> None:
        self._session = session
        self._settings = settings or get_report_settings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_status_changes(
        self,
        *,
        date_from: datetime,
        date_to: datetime,
        organization_id: str | None = None,
        team_members: Sequence[str] = (),
        statuses: Sequence[str] = (),
    ) -> FetchResult:
        """
        Candidate status transitions joined with job, client, recruiter and
        status names, ordered by ``created_at``.

        Filters
        -------
        ``team_members`` matches the recruiter display name and ``statuses``
        matches the main status name.

        Returns
        -------
        FetchResult
            ``StatusChangeRecord`` items plus skip and warning counts.
        """
        main_status = aliased(JobStatus, name="main_status")
        sub_status = aliased(JobStatus, name="sub_status")

        stmt = (
            select(
                StatusChangeCount.id,
                StatusChangeCount.candidate_id,
                StatusChangeCount.job_id,
                StatusChangeCount.count,
                StatusChangeCount.created_at,
                StatusChangeCount.updated_at,
                StatusChangeCount.main_status_id,
                StatusChangeCount.sub_status_id,
                HRJob.id.label("resolved_job_id"),
                HRJob.client_owner,
                HRJobCandidate.recruiter_name,
                main_status.name.label("main_status_name"),
                sub_status.name.label("sub_status_name"),
            )
            .outerjoin(HRJob, HRJob.id == StatusChangeCount.job_id)
            .outerjoin(HRJobCandidate, HRJobCandidate.id == StatusChangeCount.candidate_id)
            .outerjoin(main_status, main_status.id == StatusChangeCount.main_status_id)
            .outerjoin(sub_status, sub_status.id == StatusChangeCount.sub_status_id)
            .where(
                StatusChangeCount.created_at >= date_from,
                StatusChangeCount.created_at <= date_to,
            )
            .order_by(StatusChangeCount.created_at, StatusChangeCount.id)
        )
        if organization_id:
            stmt = stmt.where(StatusChangeCount.organization_id == _as_uuid(organization_id))
        if team_members:
            stmt = stmt.where(HRJobCandidate.recruiter_name.in_(list(team_members)))
        if statuses:
            stmt = stmt.where(main_status.name.in_(list(statuses)))

        rows = self._execute("status_changes", stmt)

        records: list[StatusChangeRecord] = []
        warnings = _WarningCollector()
        skipped = 0
        for row in rows:
            main_name = _text_or_none(row.main_status_name)
            sub_name = _text_or_none(row.sub_status_name)
            if row.candidate_id is None or main_name is None or sub_name is None or row.created_at is None:
                skipped += 1
                logger.warning(
                    "Skipping status change id=%s: missing candidate, status or timestamp",
                    row.id,
                )
                continue
            if not row.count:
                skipped += 1
                logger.warning("Skipping status change id=%s: empty count", row.id)
                continue

            client_name = _text_or_none(row.client_owner)
            if row.resolved_job_id is None:
                warnings.add("job", row.job_id, "Job not found; client grouped under Unknown")
            elif client_name is None:
                warnings.add("client", row.job_id, "Job has no client owner; grouped under Unknown")

            recruiter_name = _text_or_none(row.recruiter_name)
            if recruiter_name is None:
                warnings.add("recruiter", row.candidate_id, "Candidate has no recruiter; grouped under Unknown")

            records.append(
                StatusChangeRecord(
                    candidate_id=str(row.candidate_id),
                    job_id=str(row.job_id) if row.job_id is not None else None,
                    client_name=client_name,
                    recruiter_name=recruiter_name,
                    main_status=main_name,
                    sub_status=sub_name,
                    count=int(row.count),
                    created_at=_as_utc(row.created_at),
                    updated_at=_as_utc(row.updated_at),
                )
            )

        return self._result("status_changes", records, skipped, warnings)

    def fetch_status_catalogue(self, *, organization_id: str | None = None) -> tuple[tuple[str, str], ...]:
        """
        All (main, sub) status name pairs, ordered by main then sub name.
        """
        main_status = aliased(JobStatus, name="main_status")
        sub_status = aliased(JobStatus, name="sub_status")
        stmt = (
            select(main_status.name, sub_status.name)
            .join(main_status, main_status.id == sub_status.parent_id)
            .where(
                sub_status.type == JobStatusType.SUB,
                main_status.type == JobStatusType.MAIN,
            )
            .order_by(main_status.name, sub_status.name)
        )
        if organization_id:
            stmt = stmt.where(main_status.organization_id == _as_uuid(organization_id))

        rows = self._execute("status_catalogue", stmt)
        return tuple((str(main), str(sub)) for main, sub in rows)

    def fetch_jobs_assigned(
        self,
        *,
        date_from: datetime,
        date_to: datetime,
        organization_id: str | None = None,
    ) -> tuple[tuple[str, int], ...]:
        """
        Requisitions created in the window, counted per assigned recruiter.

        ``assigned_to`` carries comma-separated ids and names; jobs with no
        assignee count under ``Unassigned``. Entries whose id and name lists
        have different lengths are ignored with a warning.
        """
        stmt = select(HRJob.id, HRJob.assigned_to).where(
            HRJob.created_at >= date_from,
            HRJob.created_at <= date_to,
        )
        if organization_id:
            stmt = stmt.where(HRJob.organization_id == _as_uuid(organization_id))

        counts: dict[str, int] = {}
        for row in self._execute("jobs_assigned", stmt):
            assigned: dict[str, Any] = row.assigned_to or {}
            ids = _split_csv(assigned.get("id"))
            names = _split_csv(assigned.get("name"))
            if not ids:
                counts[UNASSIGNED_LABEL] = counts.get(UNASSIGNED_LABEL, 0) + 1
                continue
            if len(ids) != len(names):
                logger.warning("Job id=%s has mismatched assigned_to ids and names", row.id)
                continue
            for name in names:
                counts[name] = counts.get(name, 0) + 1

        return tuple(sorted(counts.items()))

    def fetch_deals(
        self,
        *,
        date_from: datetime,
        date_to: datetime,
        organization_id: str | None = None,
        team_members: Sequence[str] = (),
        statuses: Sequence[str] = (),
    ) -> FetchResult:
        """
        CRM deals created in the window.

        ``team_members`` matches the owner name and ``statuses`` the stage.
        A missing deal value counts as 0.
        """
        stmt = (
            select(
                SalesDeal.id,
                SalesDeal.owner_name,
                SalesDeal.stage,
                SalesDeal.status,
                SalesDeal.deal_value,
                SalesDeal.created_at,
                SalesDeal.actual_close_date,
            )
            .where(SalesDeal.created_at >= date_from, SalesDeal.created_at <= date_to)
            .order_by(SalesDeal.created_at, SalesDeal.id)
        )
        if organization_id:
            stmt = stmt.where(SalesDeal.organization_id == _as_uuid(organization_id))
        if team_members:
            stmt = stmt.where(SalesDeal.owner_name.in_(list(team_members)))
        if statuses:
            stmt = stmt.where(SalesDeal.stage.in_(list(statuses)))

        records: list[DealRecord] = []
        warnings = _WarningCollector()
        skipped = 0
        for row in self._execute("deals", stmt):
            status = _text_or_none(row.status)
            if row.id is None or status is None or row.created_at is None:
                skipped += 1
                logger.warning("Skipping deal id=%s: missing status or timestamp", row.id)
                continue
            owner = _text_or_none(row.owner_name)
            if owner is None:
                warnings.add("owner", row.id, "Deal has no owner; grouped under Unknown")
            records.append(
                DealRecord(
                    deal_id=str(row.id),
                    owner_name=owner,
                    stage=_text_or_none(row.stage),
                    status=status,
                    deal_value=Decimal(row.deal_value) if row.deal_value is not None else Decimal("0"),
                    created_at=_as_utc(row.created_at),
                    closed_at=_as_utc(row.actual_close_date),
                )
            )

        return self._result("deals", records, skipped, warnings)

    def fetch_sales_targets(
        self,
        *,
        date_from: datetime,
        date_to: datetime,
        organization_id: str | None = None,
    ) -> tuple[tuple[str | None, float], ...]:
        """
        Target revenue per owner for targets overlapping the window.

        ``None`` owner is the team-wide target.
        """
        stmt = select(SalesTarget.owner_name, SalesTarget.target_revenue).where(
            and_(SalesTarget.period_start <= date_to, SalesTarget.period_end >= date_from)
        )
        if organization_id:
            stmt = stmt.where(SalesTarget.organization_id == _as_uuid(organization_id))

        totals: dict[str | None, float] = {}
        for row in self._execute("sales_targets", stmt):
            owner = _text_or_none(row.owner_name)
            totals[owner] = totals.get(owner, 0.0) + float(row.target_revenue or 0)
        return tuple(sorted(totals.items(), key=lambda item: (item[0] is None, item[0] or "")))

    def fetch_credit_transactions(
        self,
        *,
        date_from: datetime,
        date_to: datetime,
        organization_id: str | None = None,
        statuses: Sequence[str] = (),
    ) -> FetchResult:
        """
        Verification credit ledger entries ordered by ``created_at``.

        ``statuses`` filters usage rows on verification type; top-ups carry
        no type and are always kept so balances and top-up totals stay whole.
        """
        stmt = (
            select(
                VerificationCreditTransaction.id,
                VerificationCreditTransaction.organization_id,
                VerificationCreditTransaction.amount,
                VerificationCreditTransaction.transaction_type,
                VerificationCreditTransaction.verification_type,
                VerificationCreditTransaction.source,
                VerificationCreditTransaction.balance_after,
                VerificationCreditTransaction.created_at,
            )
            .where(
                VerificationCreditTransaction.created_at >= date_from,
                VerificationCreditTransaction.created_at <= date_to,
            )
            .order_by(VerificationCreditTransaction.created_at, VerificationCreditTransaction.id)
        )
        if organization_id:
            stmt = stmt.where(VerificationCreditTransaction.organization_id == _as_uuid(organization_id))
        if statuses:
            stmt = stmt.where(
                or_(
                    VerificationCreditTransaction.transaction_type == CreditTransactionType.TOPUP,
                    VerificationCreditTransaction.verification_type.in_(list(statuses)),
                )
            )

        records: list[CreditTransactionRecord] = []
        skipped = 0
        for row in self._execute("credit_transactions", stmt):
            if (
                row.amount is None
                or row.balance_after is None
                or row.created_at is None
                or row.transaction_type not in _TRANSACTION_TYPES
            ):
                skipped += 1
                logger.warning(
                    "Skipping credit transaction id=%s: missing amount, balance, type or timestamp",
                    row.id,
                )
                continue
            records.append(
                CreditTransactionRecord(
                    transaction_id=str(row.id),
                    organization_id=str(row.organization_id),
                    amount=Decimal(row.amount),
                    transaction_type=row.transaction_type,
                    verification_type=_text_or_none(row.verification_type),
                    source=_text_or_none(row.source),
                    balance_after=Decimal(row.balance_after),
                    created_at=_as_utc(row.created_at),
                )
            )

        return self._result("credit_transactions", records, skipped, _WarningCollector())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _apply_statement_timeout(self) -> None:
        """
        Bound the current transaction with ``statement_timeout`` on PostgreSQL.

        Other dialects (SQLite in tests) have no equivalent and run unbounded.
        """
        if self._session.get_bind().dialect.name != "postgresql":
            return
        timeout_ms = int(self._settings.fetch_timeout_seconds * 1000)
        self._session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))

    def _execute(self, family: str, stmt: Select) -> list[Any]:
        """
        Run *stmt* and return all rows.

        Raises
        ------
        FetchError
            Wraps any ``SQLAlchemyError`` or a result above ``max_rows``.
        """
        limit = self._settings.max_rows
        t0 = time.monotonic()
        try:
            self._apply_statement_timeout()
            rows = list(self._session.execute(stmt.limit(limit + 1)).all())
        except SQLAlchemyError as exc:
            logger.error("Report fetch failed family=%s", family, exc_info=True)
            raise FetchError(f"Could not load {family.replace('_', ' ')}: {exc.__class__.__name__}") from exc

        if len(rows) > limit:
            logger.warning("Report fetch family=%s exceeded max_rows=%d", family, limit)
            raise FetchError(
                f"Query for {family.replace('_', ' ')} returned more than {limit} rows; "
                "narrow the date range or filters."
            )

        logger.debug(
            "Report fetch family=%s rows=%d elapsed=%.3fs",
            family,
            len(rows),
            time.monotonic() - t0,
        )
        return rows

    @staticmethod
    def _result(
        family: str,
        records: Iterable[Any],
        skipped: int,
        warnings: _WarningCollector,
    ) -> FetchResult:
        materialised = tuple(records)
        collected = warnings.as_tuple()
        if skipped:
            logger.warning("Report fetch family=%s skipped %d invalid row(s)", family, skipped)
        if collected:
            logger.warning(
                "Report fetch family=%s has %d partial-data warning(s)",
                family,
                len(collected),
            )
        return FetchResult(records=materialised, skipped_rows=skipped, warnings=collected)
