"""
app/api/dependencies.py

Shared FastAPI dependencies for report and calculator endpoints.
"""

from __future__ import annotations

from datetime import date

from fastapi import HTTPException, Query, status

from app.config import get_money_settings
from app.domain.report import ReportQuery
from app.errors import (
    ExportError,
    FetchError,
    ReportError,
    ReportStateError,
    ReportValidationError,
    UnknownReportError,
)
from app.validators.report_validator import build_report_query
from metrics.money import MoneyPolicy


def to_http_exception(exc: ReportError) -> HTTPException:
    """
    Map a pipeline error onto its HTTP status.

    UnknownReportError → 404, ReportValidationError → 400,
    ReportStateError → 409, FetchError / ExportError → 502.
    """
    if isinstance(exc, UnknownReportError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ReportValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "field": exc.field},
        )
    if isinstance(exc, ReportStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (FetchError, ExportError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def get_report_query(
    report_key: str,
    date_from: date | None = Query(
        default=None,
        description="Inclusive start date (YYYY-MM-DD). Defaults to the lookback window.",
    ),
    date_to: date | None = Query(
        default=None,
        description="Inclusive end date (YYYY-MM-DD). Defaults to today.",
    ),
    organization_id: str | None = Query(default=None, description="Organisation UUID."),
    team_member: list[str] | None = Query(
        default=None,
        description="Repeatable recruiter / owner name filter.",
    ),
    status_filter: list[str] | None = Query(
        default=None,
        alias="status",
        description="Repeatable status, stage or verification type filter.",
    ),
    granularity: str = Query(default="day", description='"day", "week" or "month".'),
) -> ReportQuery:
    """
    Validate report query parameters before any database work.
    """

    try:
        return build_report_query(
            report_key,
            date_from=date_from,
            date_to=date_to,
            organization_id=organization_id,
            team_members=team_member,
            statuses=status_filter,
            granularity=granularity,
        )
    except ReportValidationError as exc:
        raise to_http_exception(exc) from exc


def get_money_policy() -> MoneyPolicy:
    return MoneyPolicy.from_settings(get_money_settings())
