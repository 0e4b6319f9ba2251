"""
app/api/routers/export_router.py

Report export and email endpoints.

GET  /reports/{report_key}/export?format=csv|pdf
POST /reports/{report_key}/email

Both accept the same query parameters as ``GET /reports/{report_key}`` and
run the report before serialising it.

Responses
---------
CSV  → StreamingResponse, Content-Type: text/csv
PDF  → StreamingResponse, Content-Type: application/pdf
       Content-Disposition: attachment; filename=<report_key>_report.<ext>
Email → {"report_key": str, "recipients": [...], "sent": true}
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_report_query, to_http_exception
from app.domain.report import ReportQuery
from app.errors import ReportError
from app.schemas.reports import EmailReportRequest, EmailReportResponse, ReportResponse
from app.services.export_service import ReportExporter, get_report_exporter
from app.services.notification_service import EmailNotifier, get_email_notifier
from app.services.report_orchestrator import (
    EXPORT_FORMATS,
    ReportOrchestrator,
    get_report_orchestrator,
)
from app.validators.report_validator import validate_recipients
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["export"])


@router.get("/reports/{report_key}/export", summary="Download a report as CSV or PDF")
def export_report(
    export_format: str = Query(
        default="csv",
        alias="format",
        description='Output format: "csv" or "pdf".',
    ),
    query: ReportQuery = Depends(get_report_query),
    db: Session = Depends(get_db),
    orchestrator: ReportOrchestrator = Depends(get_report_orchestrator),
    exporter: ReportExporter = Depends(get_report_exporter),
) -> StreamingResponse:
    if export_format not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format {export_format!r}. Must be one of: {list(EXPORT_FORMATS)}.",
        )

    try:
        result = orchestrator.run(query, db)
        exported = orchestrator.export(query, result, export_format, exporter)
    except ReportError as exc:
        raise to_http_exception(exc) from exc

    logger.info(
        "Report export report=%r format=%r rows=%d bytes=%d",
        query.report_key,
        export_format,
        len(result.rows),
        len(exported.content),
    )
    return StreamingResponse(
        content=iter([exported.content]),
        media_type=exported.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{exported.filename}"',
            "X-Row-Count": str(len(result.rows)),
        },
    )


@router.post(
    "/reports/{report_key}/email",
    response_model=EmailReportResponse,
    status_code=status.HTTP_200_OK,
)
def email_report(
    body: EmailReportRequest,
    query: ReportQuery = Depends(get_report_query),
    db: Session = Depends(get_db),
    orchestrator: ReportOrchestrator = Depends(get_report_orchestrator),
    notifier: EmailNotifier = Depends(get_email_notifier),
) -> EmailReportResponse:
    """
    Run the report and send the shaped payload to the email collaborator.

    Raises HTTP 400 for invalid recipients and 502 when the collaborator
    rejects the request.
    """
    try:
        recipients = validate_recipients(body.recipients)
        result = orchestrator.run(query, db)
        orchestrator.email(
            query,
            result,
            recipients=recipients,
            subject=body.subject,
            message=body.message,
            payload=ReportResponse.from_result(result).model_dump(mode="json"),
            notifier=notifier,
        )
    except ReportError as exc:
        raise to_http_exception(exc) from exc

    return EmailReportResponse(report_key=query.report_key, recipients=recipients, sent=True)
