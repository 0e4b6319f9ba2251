"""
app/schemas/reports.py

Request and response schemas for report endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.report import ReportResult
from app.services.shaping_service import ShapeAdapter


class ReportDescriptor(BaseModel):
    key: str
    title: str


class ReportListResponse(BaseModel):
    reports: list[ReportDescriptor] = Field(default_factory=list)


class PartialDataWarningResponse(BaseModel):
    entity: str
    reference: str
    message: str


class SeriesPointResponse(BaseModel):
    """
    One time bucket of a row's per-category series.
    """

    bucket: str
    values: dict[str, float] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    """
    API response model for one shaped report.

    ``rows`` are flattened to the fixed ``columns`` list; missing values are
    ``0``. ``series`` is only populated for reports with a time breakdown,
    keyed by row label.
    """

    report_key: str
    title: str
    generated_at: datetime
    generation: int = Field(..., ge=0)
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    series: dict[str, list[SeriesPointResponse]] = Field(default_factory=dict)
    summary: dict[str, Any] = Field(default_factory=dict)
    skipped_rows: int = Field(0, ge=0)
    warnings: list[PartialDataWarningResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ReportResult) -> ReportResponse:
        series = {
            row.label: [
                SeriesPointResponse(bucket=bucket, values={name: value for name, value in values})
                for bucket, values in row.series
            ]
            for row in result.rows
            if row.series
        }
        return cls(
            report_key=result.report_key,
            title=result.title,
            generated_at=result.generated_at,
            generation=result.generation,
            columns=[column.label for column in result.columns],
            rows=ShapeAdapter().table(result.rows, result.columns),
            series=series,
            summary=dict(result.summary),
            skipped_rows=result.skipped_rows,
            warnings=[PartialDataWarningResponse(**warning.as_dict()) for warning in result.warnings],
        )


class EmailReportRequest(BaseModel):
    recipients: list[str] = Field(..., min_length=1)
    subject: str | None = None
    message: str | None = None


class EmailReportResponse(BaseModel):
    report_key: str
    recipients: list[str]
    sent: bool
