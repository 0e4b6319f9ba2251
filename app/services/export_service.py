"""
app/services/export_service.py

CSV and PDF serialisation of a shaped report.

CSV
---
Header row = the report's fixed column labels, one data row per
``MetricRow``. Missing numeric values render as ``0``. A report with no rows
still produces the header.

PDF
---
A single table (reportlab platypus) with a styled header row, preceded by
the report title and a generation timestamp on the first page.

Both serialisers read the report; neither mutates it. Any failure is
wrapped into :class:`~app.errors.ExportError`.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from xml.sax.saxutils import escape
from datetime import timezone
from decimal import Decimal
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LETTER, landscape, portrait
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.config import ExportSettings, get_export_settings
from app.domain.report import ReportResult
from app.errors import ExportError
from app.services.shaping_service import ShapeAdapter

logger = logging.getLogger(__name__)

_PAGE_SIZES = {"A4": A4, "LETTER": LETTER}

_HEADER_BACKGROUND = colors.HexColor("#3B82F6")
_ALTERNATE_ROW_BACKGROUND = colors.HexColor("#F0F4FF")


def format_cell(value: Any) -> str:
    """
    Render one table value as text.

    Integral numbers print without decimals, other numbers with two,
    ``None`` as ``0``.
    """
    if value is None:
        return "0"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        if value == int(value):
            return str(int(value))
        return f"{float(value):.2f}"
    return str(value)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_") or "report"


class ReportExporter:
    """
    Stateless CSV / PDF serialiser.

    Parameters
    ----------
    settings:
        Page size, orientation and filename suffix; defaults to the cached
        environment settings.
    """

    def __init__(self, settings: ExportSettings | None = None) -> None:
        self._settings = settings or get_export_settings()
        self._shaper = ShapeAdapter()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def filename(self, report: ReportResult, extension: str) -> str:
        return f"{_slug(report.report_key)}_{_slug(self._settings.csv_filename_suffix)}.{extension}"

    def to_csv(self, report: ReportResult) -> str:
        """
        Serialise *report* as CSV text.

        Raises
        ------
        ExportError
            If a row cannot be serialised.
        """
        try:
            buf = io.StringIO()
            writer = csv.writer(buf, lineterminator="\r\n")
            writer.writerow([column.label for column in report.columns])
            for row in report.rows:
                writer.writerow(
                    [format_cell(self._shaper.cell(row, column)) for column in report.columns]
                )
        except (csv.Error, ValueError, TypeError) as exc:
            logger.error("CSV export failed report=%r", report.report_key, exc_info=True)
            raise ExportError(f"CSV export failed for {report.report_key!r}: {exc}") from exc

        logger.info("CSV export report=%r rows=%d", report.report_key, len(report.rows))
        return buf.getvalue()

    def to_pdf(self, report: ReportResult) -> bytes:
        """
        Render *report* as a single-table PDF document.

        Raises
        ------
        ExportError
            If a cell cannot be rendered or reportlab fails to build the
            document.
        """
        buf = io.BytesIO()
        body: list[list[str]] = []
        try:
            header = [column.label for column in report.columns]
            body = [
                [format_cell(self._shaper.cell(row, column)) for column in report.columns]
                for row in report.rows
            ]
            doc = SimpleDocTemplate(
                buf,
                pagesize=self._page_size(),
                leftMargin=14 * mm,
                rightMargin=14 * mm,
                topMargin=14 * mm,
                bottomMargin=14 * mm,
                title=report.title,
            )
            styles = getSampleStyleSheet()
            generated = report.generated_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
            story: list[Any] = [
                Paragraph(escape(report.title), styles["Title"]),
                Paragraph(f"Generated {generated}", styles["Normal"]),
                Spacer(1, 6 * mm),
            ]
            if report.warnings:
                story.append(
                    Paragraph(
                        f"{len(report.warnings)} reference(s) could not be resolved and are grouped under Unknown.",
                        styles["Italic"],
                    )
                )
                story.append(Spacer(1, 4 * mm))

            table = Table([header] + body, repeatRows=1)
            table.setStyle(self._table_style(len(body)))
            story.append(table)
            doc.build(story)
        except Exception as exc:  # noqa: BLE001
            logger.error("PDF export failed report=%r", report.report_key, exc_info=True)
            raise ExportError(f"PDF export failed for {report.report_key!r}: {exc}") from exc

        logger.info("PDF export report=%r rows=%d", report.report_key, len(body))
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _page_size(self) -> tuple[float, float]:
        size = _PAGE_SIZES.get(self._settings.pdf_page_size, A4)
        return landscape(size) if self._settings.pdf_landscape else portrait(size)

    @staticmethod
    def _table_style(body_rows: int) -> TableStyle:
        commands: list[tuple[Any, ...]] = [
            ("BACKGROUND", (0, 0), (-1, 0), _HEADER_BACKGROUND),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        for index in range(2, body_rows + 1, 2):
            commands.append(("BACKGROUND", (0, index), (-1, index), _ALTERNATE_ROW_BACKGROUND))
        return TableStyle(commands)


# ---------------------------------------------------------------------------
# Singleton factory
# ---------------------------------------------------------------------------


_exporter: ReportExporter | None = None


def get_report_exporter() -> ReportExporter:
    global _exporter
    if _exporter is None:
        _exporter = ReportExporter()
    return _exporter
