"""
tests/test_row_fetcher.py

Pytest tests for RowFetcher against SQLite in memory.

Coverage
--------
- Status changes joined with client, recruiter and status names
- Date window, team member and status filters
- Rows missing a mandatory field are skipped and counted
- Dangling job reference becomes a partial-data warning, not a dropped row
- Status catalogue and jobs assigned lookups
- Deals, sales targets and credit transactions
- SQLAlchemyError and max_rows both surface as FetchError
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import ReportSettings
from app.errors import FetchError
from app.services.row_fetcher import UNASSIGNED_LABEL, RowFetcher
from db.models import SalesTarget
from tests.factories import (
    BASE_TIME,
    ORG_ID,
    add_candidate,
    add_credit,
    add_deal,
    add_job,
    add_status_change,
    seed_acme_beta,
)

WINDOW = {
    "date_from": BASE_TIME - timedelta(days=1),
    "date_to": BASE_TIME + timedelta(days=1),
}


@pytest.fixture()
def fetcher(db_session: Session) -> RowFetcher:
    return RowFetcher(db_session, ReportSettings(max_rows=1000))


class TestStatusChanges:
    def test_joined_records(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        result = fetcher.fetch_status_changes(**WINDOW)

        assert result.skipped_rows == 0
        assert result.warnings == ()
        assert [(r.client_name, r.recruiter_name, r.main_status, r.sub_status) for r in result.records] == [
            ("Acme", "Asha", "Processed", "Processed (Client)"),
            ("Acme", "Asha", "Interview", "L1"),
            ("Beta", "Vikram", "Joined", "Joined"),
        ]
        assert all(r.created_at.tzinfo is not None for r in result.records)

    def test_window_excludes_outside_rows(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        result = fetcher.fetch_status_changes(
            date_from=BASE_TIME + timedelta(days=5),
            date_to=BASE_TIME + timedelta(days=6),
        )
        assert result.records == ()

    def test_filters(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        by_member = fetcher.fetch_status_changes(**WINDOW, team_members=["Vikram"])
        assert [r.client_name for r in by_member.records] == ["Beta"]

        by_status = fetcher.fetch_status_changes(**WINDOW, statuses=["Interview"])
        assert [r.main_status for r in by_status.records] == ["Interview"]

    def test_organization_filter(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        other = fetcher.fetch_status_changes(**WINDOW, organization_id=str(uuid.uuid4()))
        assert other.records == ()
        same = fetcher.fetch_status_changes(**WINDOW, organization_id=str(ORG_ID))
        assert len(same.records) == 3

    def test_missing_status_is_skipped(self, db_session: Session, fetcher: RowFetcher) -> None:
        ids = seed_acme_beta(db_session)
        add_status_change(
            db_session,
            candidate_id=ids["c1"],
            job_id=ids["acme"],
            main_id=ids["Processed"],
            sub_id=None,
        )
        db_session.commit()
        result = fetcher.fetch_status_changes(**WINDOW)
        assert result.skipped_rows == 1
        assert len(result.records) == 3

    def test_dangling_job_becomes_warning(self, db_session: Session, fetcher: RowFetcher) -> None:
        ids = seed_acme_beta(db_session)
        missing_job = uuid.uuid4()
        add_status_change(
            db_session,
            candidate_id=ids["c1"],
            job_id=missing_job,
            main_id=ids["Joined"],
            sub_id=ids["Joined/Joined"],
        )
        db_session.commit()
        result = fetcher.fetch_status_changes(**WINDOW)

        assert len(result.records) == 4
        orphan = [r for r in result.records if r.job_id == str(missing_job)][0]
        assert orphan.client_name is None
        assert [(w.entity, w.reference) for w in result.warnings] == [("job", str(missing_job))]

    def test_missing_recruiter_warns(self, db_session: Session, fetcher: RowFetcher) -> None:
        ids = seed_acme_beta(db_session)
        job = add_job(db_session, client="Gamma")
        candidate = add_candidate(db_session, job, recruiter=None)
        add_status_change(
            db_session,
            candidate_id=candidate.id,
            job_id=job.id,
            main_id=ids["Joined"],
            sub_id=ids["Joined/Joined"],
        )
        db_session.commit()
        result = fetcher.fetch_status_changes(**WINDOW)
        assert [w.entity for w in result.warnings] == ["recruiter"]


class TestLookups:
    def test_status_catalogue(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        catalogue = fetcher.fetch_status_catalogue()
        assert ("Interview", "L1") in catalogue
        assert catalogue == tuple(sorted(catalogue))
        assert len(catalogue) == 5

    def test_jobs_assigned(self, db_session: Session, fetcher: RowFetcher) -> None:
        seed_acme_beta(db_session)
        add_job(db_session, client="Gamma", assigned={"id": "u1,u3", "name": "Asha,Meera"})
        add_job(db_session, client="Delta", assigned=None)
        add_job(db_session, client="Echo", assigned={"id": "u1,u2", "name": "Asha"})
        db_session.commit()

        assert fetcher.fetch_jobs_assigned(**WINDOW) == (
            ("Asha", 2),
            ("Meera", 1),
            (UNASSIGNED_LABEL, 1),
            ("Vikram", 1),
        )


class TestDealsAndCredits:
    def test_deals(self, db_session: Session, fetcher: RowFetcher) -> None:
        add_deal(db_session, owner="Ravi", stage="Proposal", status="Open", value=None)
        add_deal(
            db_session,
            owner=None,
            stage="Closed Won",
            status="Won",
            value="500",
            offset_days=0.25,
            close_after_days=3,
        )
        db_session.commit()

        result = fetcher.fetch_deals(**WINDOW)
        assert [r.deal_value for r in result.records] == [Decimal("0"), Decimal("500")]
        assert result.records[1].closed_at == BASE_TIME + timedelta(days=3.25)
        assert [w.entity for w in result.warnings] == ["owner"]

        assert len(fetcher.fetch_deals(**WINDOW, statuses=["Proposal"]).records) == 1

    def test_sales_targets(self, db_session: Session, fetcher: RowFetcher) -> None:
        for owner, amount in (("Ravi", "1000"), ("Ravi", "500"), (None, "4000")):
            db_session.add(
                SalesTarget(
                    id=uuid.uuid4(),
                    organization_id=ORG_ID,
                    owner_name=owner,
                    target_revenue=Decimal(amount),
                    period_start=BASE_TIME - timedelta(days=10),
                    period_end=BASE_TIME + timedelta(days=10),
                )
            )
        db_session.commit()
        assert fetcher.fetch_sales_targets(**WINDOW) == (("Ravi", 1500.0), (None, 4000.0))

    def test_credit_transactions(self, db_session: Session, fetcher: RowFetcher) -> None:
        add_credit(db_session, amount="1000", balance_after="1000", transaction_type="topup")
        add_credit(db_session, amount="-10", balance_after="990", verification_type=None, offset_days=0.25)
        add_credit(db_session, amount="-5", balance_after="985", transaction_type="refund", offset_days=0.5)
        db_session.commit()

        result = fetcher.fetch_credit_transactions(**WINDOW)
        assert result.skipped_rows == 1
        assert [r.transaction_type for r in result.records] == ["topup", "usage"]
        assert result.records[1].verification_type is None
        assert result.records[1].cost == Decimal("10")

    def test_type_filter_keeps_topups(self, db_session: Session, fetcher: RowFetcher) -> None:
        add_credit(
            db_session,
            amount="1000",
            balance_after="1000",
            transaction_type="topup",
            verification_type=None,
            source=None,
        )
        add_credit(db_session, amount="-10", balance_after="990", offset_days=0.25)
        add_credit(db_session, amount="-20", balance_after="970", verification_type="uan", offset_days=0.5)
        db_session.commit()

        result = fetcher.fetch_credit_transactions(**WINDOW, statuses=["pan"])
        assert [(r.transaction_type, r.verification_type) for r in result.records] == [
            ("topup", None),
            ("usage", "pan"),
        ]


class TestFailures:
    def test_sqlalchemy_error_becomes_fetch_error(self) -> None:
        session = mock.Mock(spec=Session)
        session.get_bind.return_value.dialect.name = "sqlite"
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        fetcher = RowFetcher(session, ReportSettings())
        with pytest.raises(FetchError):
            fetcher.fetch_status_changes(
                date_from=datetime(2026, 3, 1, tzinfo=timezone.utc),
                date_to=datetime(2026, 3, 2, tzinfo=timezone.utc),
            )

    def test_max_rows_exceeded(self, db_session: Session) -> None:
        seed_acme_beta(db_session)
        fetcher = RowFetcher(db_session, ReportSettings(max_rows=2))
        with pytest.raises(FetchError):
            fetcher.fetch_status_changes(**WINDOW)
