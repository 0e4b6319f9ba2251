"""
tests/test_report_orchestrator.py

Pytest tests for ReportOrchestrator end to end against SQLite in memory.

Coverage
--------
- Client-wise run over seeded rows
- Unknown report key fails before any database call
- Empty range yields an empty result and a header-only CSV
- Build output memoised on identical inputs
- Fetch failure keeps the previously displayed result
- CSV / PDF export, invalid format, export failure
- Email routed through the notifier with the report title as subject
- Superseded results are still exported but never displayed
"""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import ExportSettings, ReportSettings
from app.domain.report import ReportQuery
from app.errors import ExportError, FetchError, ReportValidationError, UnknownReportError
from app.services.export_service import ReportExporter
from app.services.report_orchestrator import ReportOrchestrator
from app.services.report_session import ReportState
from tests.factories import BASE_TIME, add_job, seed_acme_beta


def _query(report_key: str = "client_wise", **overrides) -> ReportQuery:
    params = {
        "report_key": report_key,
        "date_from": BASE_TIME - timedelta(days=1),
        "date_to": BASE_TIME + timedelta(days=1),
    }
    params.update(overrides)
    return ReportQuery(**params)


@pytest.fixture()
def orchestrator() -> ReportOrchestrator:
    return ReportOrchestrator(settings=ReportSettings(max_rows=1000))


@pytest.fixture()
def exporter() -> ReportExporter:
    return ReportExporter(ExportSettings())


@pytest.fixture()
def seeded(db_session: Session) -> Session:
    seed_acme_beta(db_session)
    return db_session


class TestRun:
    def test_client_wise(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)

        rows = {row.label: row for row in result.rows}
        assert rows["Acme"].total == 2
        assert rows["Acme"].category("Processed") == 1
        assert rows["Acme"].category("Interview") == 1
        assert rows["Beta"].total == 1
        assert rows["Beta"].category("Joined") == 1
        assert result.generation == 1
        assert result.title == "Client-wise Candidate Status Report"

        session = orchestrator.session_for(query)
        assert session.state is ReportState.SHAPED
        assert session.result is not None
        assert session.result.rows == result.rows

    def test_recruiter_performance_uses_jobs_lookup(
        self, orchestrator: ReportOrchestrator, seeded: Session
    ) -> None:
        add_job(seeded, client="Gamma", assigned={"id": "u9", "name": "Meera"})
        seeded.commit()
        result = orchestrator.run(_query("recruiter_performance"), seeded)
        rows = {row.label: row for row in result.rows}
        assert sorted(rows) == ["Asha", "Meera", "Vikram"]
        assert rows["Asha"].metric("jobs_assigned") == 1
        assert rows["Meera"].metric("jobs_assigned") == 1

    def test_individual_uses_status_catalogue(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        result = orchestrator.run(_query("individual"), seeded)
        labels = [column.label for column in result.columns]
        assert "Offered - Offer Issued" in labels
        assert "Processed - Processed (Internal)" in labels

    def test_unknown_report(self, orchestrator: ReportOrchestrator) -> None:
        db = mock.Mock(spec=Session)
        with pytest.raises(UnknownReportError):
            orchestrator.run(_query("nope"), db)
        db.execute.assert_not_called()

    def test_empty_range(
        self, orchestrator: ReportOrchestrator, seeded: Session, exporter: ReportExporter
    ) -> None:
        query = _query(
            date_from=BASE_TIME + timedelta(days=30),
            date_to=BASE_TIME + timedelta(days=31),
        )
        result = orchestrator.run(query, seeded)
        assert result.is_empty
        exported = orchestrator.export(query, result, "csv", exporter)
        assert exported.content == b"Client,Total Candidates,Processed,Interview,Offered,Joined\r\n"

    def test_build_is_memoised(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        first = orchestrator.run(_query(), seeded)
        second = orchestrator.run(_query(), seeded)
        assert first.rows == second.rows
        assert second.generation == first.generation + 1
        info = orchestrator.cache_info()
        assert info.misses == 1
        assert info.hits == 1

    def test_fetch_failure_keeps_previous_result(
        self, orchestrator: ReportOrchestrator, seeded: Session
    ) -> None:
        query = _query()
        shown = orchestrator.run(query, seeded)

        broken = mock.Mock(spec=Session)
        broken.get_bind.return_value.dialect.name = "sqlite"
        broken.execute.side_effect = OperationalError("SELECT", {}, Exception("unreachable"))
        with pytest.raises(FetchError):
            orchestrator.run(query, broken)

        session = orchestrator.session_for(query)
        assert session.state is ReportState.FETCH_FAILED
        assert session.result is not None
        assert session.result.rows == shown.rows


class TestExport:
    def test_csv(self, orchestrator: ReportOrchestrator, seeded: Session, exporter: ReportExporter) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        exported = orchestrator.export(query, result, "csv", exporter)

        lines = exported.content.decode("utf-8").splitlines()
        assert lines[0] == "Client,Total Candidates,Processed,Interview,Offered,Joined"
        assert lines[1] == "Acme,2,1,1,0,0"
        assert lines[2] == "Beta,1,0,0,0,1"
        assert exported.media_type.startswith("text/csv")
        assert exported.filename == "client_wise_report.csv"
        assert orchestrator.session_for(query).state is ReportState.IDLE

    def test_pdf(self, orchestrator: ReportOrchestrator, seeded: Session, exporter: ReportExporter) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        exported = orchestrator.export(query, result, "pdf", exporter)
        assert exported.content.startswith(b"%PDF")
        assert exported.media_type == "application/pdf"

    def test_invalid_format(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        with pytest.raises(ReportValidationError):
            orchestrator.export(query, result, "xlsx")

    def test_export_failure(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        failing = mock.Mock(spec=ReportExporter)
        failing.to_csv.side_effect = ExportError("disk full")

        with pytest.raises(ExportError):
            orchestrator.export(query, result, "csv", failing)
        session = orchestrator.session_for(query)
        assert session.state is ReportState.EXPORT_FAILED
        assert session.result is not None

    def test_superseded_result_still_exports(
        self, orchestrator: ReportOrchestrator, seeded: Session, exporter: ReportExporter
    ) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        orchestrator.session_for(query).begin_fetch()

        exported = orchestrator.export(query, result, "csv", exporter)
        assert exported.content
        assert orchestrator.session_for(query).state is ReportState.FETCHING


class TestEmail:
    def test_sends_payload(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        notifier = mock.Mock()

        orchestrator.email(
            query,
            result,
            recipients=["ops@example.test"],
            subject=None,
            message="weekly",
            payload={"report_key": "client_wise"},
            notifier=notifier,
        )
        notifier.send_report.assert_called_once_with(
            recipients=["ops@example.test"],
            subject="Client-wise Candidate Status Report",
            report={"report_key": "client_wise"},
            message="weekly",
        )
        assert orchestrator.session_for(query).state is ReportState.IDLE

    def test_failure_marks_session(self, orchestrator: ReportOrchestrator, seeded: Session) -> None:
        query = _query()
        result = orchestrator.run(query, seeded)
        notifier = mock.Mock()
        notifier.send_report.side_effect = ExportError("rejected")

        with pytest.raises(ExportError):
            orchestrator.email(
                query,
                result,
                recipients=["ops@example.test"],
                subject="Custom",
                message=None,
                payload={},
                notifier=notifier,
            )
        assert orchestrator.session_for(query).state is ReportState.EXPORT_FAILED
