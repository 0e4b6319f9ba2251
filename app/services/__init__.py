"""
app/services package marker.
"""

from app.services.export_service import ReportExporter, get_report_exporter
from app.services.grouping_service import GroupingReducer, latest_per_entity, time_bucket
from app.services.notification_service import EmailNotifier, get_email_notifier
from app.services.report_orchestrator import (
    ExportedFile,
    ReportOrchestrator,
    get_report_orchestrator,
)
from app.services.report_session import ReportSession, ReportSessionRegistry, ReportState
from app.services.row_fetcher import RowFetcher
from app.services.shaping_service import ShapeAdapter, ShapeSpec

__all__ = [
    "EmailNotifier",
    "ExportedFile",
    "GroupingReducer",
    "ReportExporter",
    "ReportOrchestrator",
    "ReportSession",
    "ReportSessionRegistry",
    "ReportState",
    "RowFetcher",
    "ShapeAdapter",
    "ShapeSpec",
    "get_email_notifier",
    "get_report_exporter",
    "get_report_orchestrator",
    "latest_per_entity",
    "time_bucket",
]
