"""
tests/test_routers.py

HTTP contract tests for the report, export, payroll and billing routers.

A small FastAPI app mounts the routers; the database, orchestrator,
exporter, notifier and money policy dependencies are overridden so the
tests run against SQLite in memory with no outbound calls.

Coverage
--------
- Report listing and JSON report body
- 404 unknown report, 400 invalid parameters, 502 fetch failure
- CSV / PDF download headers and invalid format
- Email success, invalid recipients, collaborator failure
- Payroll and billing calculators, including validation errors
"""

from __future__ import annotations

from collections.abc import Iterator
from unittest import mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from app.api.dependencies import get_money_policy
from app.api.routers import billing_router, export_router, payroll_router, report_router
from app.config import ExportSettings, ReportSettings
from app.errors import ExportError
from app.services.export_service import ReportExporter, get_report_exporter
from app.services.notification_service import get_email_notifier
from app.services.report_orchestrator import ReportOrchestrator, get_report_orchestrator
from db.session import get_db
from metrics.money import MoneyPolicy
from tests.factories import seed_acme_beta

RANGE = {"date_from": "2026-03-01", "date_to": "2026-03-03"}


@pytest.fixture()
def notifier() -> mock.Mock:
    return mock.Mock()


@pytest.fixture()
def app(db_engine: Engine, notifier: mock.Mock) -> FastAPI:
    factory = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    with factory() as session:
        seed_acme_beta(session)

    def _get_db() -> Iterator[Session]:
        session = factory()
        try:
            yield session
        finally:
            session.close()

    orchestrator = ReportOrchestrator(settings=ReportSettings(max_rows=1000))

    application = FastAPI()
    application.include_router(report_router)
    application.include_router(export_router)
    application.include_router(payroll_router)
    application.include_router(billing_router)
    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_report_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_report_exporter] = lambda: ReportExporter(ExportSettings())
    application.dependency_overrides[get_email_notifier] = lambda: notifier
    application.dependency_overrides[get_money_policy] = lambda: MoneyPolicy()
    return application


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestReports:
    def test_list(self, client: TestClient) -> None:
        response = client.get("/reports")
        assert response.status_code == 200
        keys = [report["key"] for report in response.json()["reports"]]
        assert keys == sorted(keys)
        assert "client_wise" in keys

    def test_client_wise(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise", params=RANGE)
        assert response.status_code == 200
        body = response.json()
        assert body["columns"] == ["Client", "Total Candidates", "Processed", "Interview", "Offered", "Joined"]
        assert body["rows"] == [
            {"Client": "Acme", "Total Candidates": 2, "Processed": 1, "Interview": 1, "Offered": 0, "Joined": 0},
            {"Client": "Beta", "Total Candidates": 1, "Processed": 0, "Interview": 0, "Offered": 0, "Joined": 1},
        ]
        assert body["generation"] == 1
        assert body["warnings"] == []

    def test_team_member_filter(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise", params={**RANGE, "team_member": "Vikram"})
        assert [row["Client"] for row in response.json()["rows"]] == ["Beta"]

    def test_unknown_report(self, client: TestClient) -> None:
        assert client.get("/reports/nope", params=RANGE).status_code == 404

    def test_inverted_range(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise", params={"date_from": "2026-03-05", "date_to": "2026-03-01"})
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "date_to"

    def test_bad_organization_id(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise", params={**RANGE, "organization_id": "acme"})
        assert response.status_code == 400

    def test_fetch_failure(self, app: FastAPI, client: TestClient) -> None:
        broken = mock.Mock(spec=Session)
        broken.get_bind.return_value.dialect.name = "sqlite"
        broken.execute.side_effect = OperationalError("SELECT", {}, Exception("unreachable"))
        app.dependency_overrides[get_db] = lambda: broken

        assert client.get("/reports/client_wise", params=RANGE).status_code == 502


class TestExport:
    def test_csv(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise/export", params={**RANGE, "format": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="client_wise_report.csv"' in response.headers["content-disposition"]
        assert response.headers["x-row-count"] == "2"
        assert response.text.splitlines()[1] == "Acme,2,1,1,0,0"

    def test_pdf(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise/export", params={**RANGE, "format": "pdf"})
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_invalid_format(self, client: TestClient) -> None:
        response = client.get("/reports/client_wise/export", params={**RANGE, "format": "xlsx"})
        assert response.status_code == 400


class TestEmail:
    def test_sends(self, client: TestClient, notifier: mock.Mock) -> None:
        response = client.post(
            "/reports/client_wise/email",
            params=RANGE,
            json={"recipients": ["ops@example.test"], "message": "weekly"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "report_key": "client_wise",
            "recipients": ["ops@example.test"],
            "sent": True,
        }
        notifier.send_report.assert_called_once()
        payload = notifier.send_report.call_args.kwargs["report"]
        assert payload["report_key"] == "client_wise"
        assert len(payload["rows"]) == 2

    def test_invalid_recipient(self, client: TestClient, notifier: mock.Mock) -> None:
        response = client.post("/reports/client_wise/email", params=RANGE, json={"recipients": ["nobody"]})
        assert response.status_code == 400
        notifier.send_report.assert_not_called()

    def test_empty_recipients_rejected_by_schema(self, client: TestClient) -> None:
        response = client.post("/reports/client_wise/email", params=RANGE, json={"recipients": []})
        assert response.status_code == 422

    def test_collaborator_failure(self, client: TestClient, notifier: mock.Mock) -> None:
        notifier.send_report.side_effect = ExportError("rejected")
        response = client.post(
            "/reports/client_wise/email",
            params=RANGE,
            json={"recipients": ["ops@example.test"]},
        )
        assert response.status_code == 502


class TestPayroll:
    def test_lop_proration(self, client: TestClient) -> None:
        response = client.post(
            "/payroll/lop-proration",
            json={"standard_earnings": {"basic": "8000", "hra": "2000"}, "paid_days": 27, "lop_days": 3},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["per_day_salary"] == "333.33"
        assert body["lop_deduction"] == "1000.00"
        assert body["adjusted_earnings"] == {"basic": "7200.00", "hra": "1800.00"}

    def test_lop_exceeding_paid_days(self, client: TestClient) -> None:
        response = client.post(
            "/payroll/lop-proration",
            json={"standard_earnings": {"basic": "8000"}, "paid_days": 2, "lop_days": 3},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "lop_days"

    def test_per_day_rate(self, client: TestClient) -> None:
        response = client.post("/payroll/per-day-rate", json={"monthly_total": "10000", "days_in_period": 30})
        assert response.status_code == 200
        assert response.json()["per_day_rate"] == "333.33"


class TestBilling:
    def test_subscription_quote(self, client: TestClient) -> None:
        response = client.post(
            "/billing/subscription-quote",
            json={
                "pricing_mode": "standard",
                "billing_cycle": "quarterly",
                "base_rate": "100",
                "role_limits": {"organization_superadmin": 1, "admin": 2, "employee": 7},
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total_users"] == 10
        assert body["total"] == "3540.00"

    def test_subscription_quote_bad_cycle(self, client: TestClient) -> None:
        response = client.post(
            "/billing/subscription-quote",
            json={"billing_cycle": "weekly", "base_rate": "100", "role_limits": {"employee": 1}},
        )
        assert response.status_code == 400

    def test_subscription_quote_unknown_role(self, client: TestClient) -> None:
        response = client.post(
            "/billing/subscription-quote",
            json={"pricing_mode": "standard", "base_rate": "100", "role_limits": {"manager": 5}},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "role_limits.manager"

    def test_invoice_totals(self, client: TestClient) -> None:
        response = client.post(
            "/billing/invoice-totals",
            json={
                "items": [
                    {"amount": "1000", "tax_percentage": "18"},
                    {"amount": "500", "tax_percentage": "5"},
                ],
                "tds_amount": "50",
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["tax_breakdown"] == {"18": "180.00", "5": "25.00"}
        assert body["grand_total"] == "1655.00"

    def test_invoice_without_items(self, client: TestClient) -> None:
        assert client.post("/billing/invoice-totals", json={"items": []}).status_code == 400
