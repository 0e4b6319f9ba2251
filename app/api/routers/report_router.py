"""
app/api/routers/report_router.py

Report listing and JSON report endpoints.

GET /reports              registered report keys and titles
GET /reports/{report_key} one shaped report

Query parameters
----------------
date_from     : inclusive start date (YYYY-MM-DD)
date_to       : inclusive end date (YYYY-MM-DD)
organization_id : organisation UUID
team_member   : repeatable recruiter / owner filter
status        : repeatable status / stage / verification type filter
granularity   : "day" | "week" | "month" (time-bucketed reports)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import get_report_query, to_http_exception
from app.domain.report import ReportQuery
from app.errors import ReportError
from app.schemas.reports import ReportDescriptor, ReportListResponse, ReportResponse
from app.services.report_orchestrator import ReportOrchestrator, get_report_orchestrator
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


@router.get("/reports", response_model=ReportListResponse)
def list_reports(
    orchestrator: ReportOrchestrator = Depends(get_report_orchestrator),
) -> ReportListResponse:
    return ReportListResponse(
        reports=[
            ReportDescriptor(key=definition.key, title=definition.title)
            for definition in orchestrator.list_reports()
        ]
    )


@router.get("/reports/{report_key}", response_model=ReportResponse)
def get_report(
    query: ReportQuery = Depends(get_report_query),
    db: Session = Depends(get_db),
    orchestrator: ReportOrchestrator = Depends(get_report_orchestrator),
) -> ReportResponse:
    """
    Run one report and return its rows flattened to the report's columns.

    Raises HTTP 404 for an unknown report, 400 for invalid parameters and
    502 when the database cannot be read.
    """
    try:
        result = orchestrator.run(query, db)
    except ReportError as exc:
        raise to_http_exception(exc) from exc

    return ReportResponse.from_result(result)
