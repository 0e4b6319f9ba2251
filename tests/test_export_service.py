"""
tests/test_export_service.py

Pytest unit tests for CSV / PDF serialisation and the email collaborator.

Coverage
--------
- format_cell number rendering
- CSV header-only output for an empty report
- CSV data rows with zero-filled missing values
- PDF byte signature
- ExportError wrapping
- EmailNotifier success, disabled, transport failure, non-2xx,
  invalid JSON and success=false
"""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal
from unittest import mock

import pytest
import requests

from app.config import ExportSettings, NotificationSettings
from app.domain.report import ColumnSpec, MetricRow, ReportResult
from app.errors import ExportError, PartialDataWarning
from app.services.export_service import ReportExporter, format_cell
from app.services.notification_service import EmailNotifier

COLUMNS = (
    ColumnSpec("Client", "label"),
    ColumnSpec("Total Candidates", "total"),
    ColumnSpec("Interview", "category:Interview"),
    ColumnSpec("Avg", "metric:avg"),
)


def _report(rows: tuple[MetricRow, ...] = (), warnings: tuple = ()) -> ReportResult:
    return ReportResult(
        report_key="client_wise",
        title="Client-wise <Status> Report",
        columns=COLUMNS,
        rows=rows,
        generated_at=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        warnings=warnings,
    )


@pytest.fixture()
def exporter() -> ReportExporter:
    return ReportExporter(ExportSettings())


class TestFormatCell:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "0"),
            (3, "3"),
            (2.0, "2"),
            (33.3333, "33.33"),
            (Decimal("1000.50"), "1000.50"),
            (True, "Yes"),
            ("Acme", "Acme"),
        ],
    )
    def test_rendering(self, value: object, expected: str) -> None:
        assert format_cell(value) == expected


class TestCSV:
    def test_zero_rows_produce_header_only(self, exporter: ReportExporter) -> None:
        text = exporter.to_csv(_report())
        assert text == "Client,Total Candidates,Interview,Avg\r\n"

    def test_rows(self, exporter: ReportExporter) -> None:
        rows = (
            MetricRow(label="Acme", total=2, breakdown=(("Interview", 1),), metrics=(("avg", 1.5),)),
            MetricRow(label="Beta, Inc", total=1),
        )
        parsed = list(csv.reader(io.StringIO(exporter.to_csv(_report(rows)))))
        assert parsed == [
            ["Client", "Total Candidates", "Interview", "Avg"],
            ["Acme", "2", "1", "1.50"],
            ["Beta, Inc", "1", "0", "0"],
        ]

    def test_bad_column_raises_export_error(self, exporter: ReportExporter) -> None:
        report = ReportResult(
            report_key="broken",
            title="Broken",
            columns=(ColumnSpec("Bad", "unknown"),),
            rows=(MetricRow(label="x", total=0),),
            generated_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
        )
        with pytest.raises(ExportError):
            exporter.to_csv(report)

    def test_filename(self, exporter: ReportExporter) -> None:
        assert exporter.filename(_report(), "csv") == "client_wise_report.csv"


class TestPDF:
    def test_pdf_signature(self, exporter: ReportExporter) -> None:
        rows = tuple(MetricRow(label=f"Client {i}", total=i) for i in range(60))
        warning = PartialDataWarning(entity="client", reference="job-9", message="missing")
        content = exporter.to_pdf(_report(rows, warnings=(warning,)))
        assert content.startswith(b"%PDF")

    def test_empty_pdf(self) -> None:
        content = ReportExporter(ExportSettings(pdf_page_size="LETTER", pdf_landscape=False)).to_pdf(_report())
        assert content.startswith(b"%PDF")

    def test_bad_column_raises_export_error(self, exporter: ReportExporter) -> None:
        report = ReportResult(
            report_key="broken",
            title="Broken",
            columns=(ColumnSpec("Bad", "unknown"),),
            rows=(MetricRow(label="x", total=0),),
            generated_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
        )
        with pytest.raises(ExportError):
            exporter.to_pdf(report)


def _notifier(session: mock.Mock, enabled: bool = True) -> EmailNotifier:
    settings = NotificationSettings(
        enabled=enabled,
        endpoint_url="https://mail.example.test/send",
        api_key="secret",
        timeout_seconds=5.0,
    )
    return EmailNotifier(settings, session=session)


def _response(status_code: int = 200, payload: object = None, invalid_json: bool = False) -> mock.Mock:
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = "body"
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    if invalid_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


class TestEmailNotifier:
    def test_single_post_with_payload(self) -> None:
        session = mock.Mock()
        session.post.return_value = _response(payload={"success": True})
        _notifier(session).send_report(
            recipients=["ops@example.test"],
            subject="Weekly",
            report={"report_key": "client_wise"},
        )
        session.post.assert_called_once()
        _, kwargs = session.post.call_args
        assert kwargs["json"]["to"] == ["ops@example.test"]
        assert kwargs["json"]["report"] == {"report_key": "client_wise"}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 5.0

    def test_disabled(self) -> None:
        session = mock.Mock()
        with pytest.raises(ExportError):
            _notifier(session, enabled=False).send_report(recipients=["a@b.test"], subject="s", report={})
        session.post.assert_not_called()

    def test_transport_failure(self) -> None:
        session = mock.Mock()
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(ExportError):
            _notifier(session).send_report(recipients=["a@b.test"], subject="s", report={})
        assert session.post.call_count == 1

    def test_non_2xx(self) -> None:
        session = mock.Mock()
        session.post.return_value = _response(status_code=503, payload={"success": True})
        with pytest.raises(ExportError):
            _notifier(session).send_report(recipients=["a@b.test"], subject="s", report={})

    def test_invalid_json(self) -> None:
        session = mock.Mock()
        session.post.return_value = _response(invalid_json=True)
        with pytest.raises(ExportError):
            _notifier(session).send_report(recipients=["a@b.test"], subject="s", report={})

    def test_success_false(self) -> None:
        session = mock.Mock()
        session.post.return_value = _response(payload={"success": False, "error": "quota"})
        with pytest.raises(ExportError):
            _notifier(session).send_report(recipients=["a@b.test"], subject="s", report={})
