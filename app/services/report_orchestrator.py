"""
app/services/report_orchestrator.py

Report pipeline orchestrator.

Wires RowFetcher → GroupingReducer → metric formulas → ShapeAdapter into a
single run per report, and routes exports through the session so the
displayed result is only ever replaced by the latest fetch:

    RowFetcher        – filtered SELECTs, boundary validation
    report definition – reducer + formulas + shape spec for one report key
    ReportSession     – state machine and request generations
    ReportExporter    – CSV / PDF
    EmailNotifier     – outbound email

Failure contract
----------------
- Unknown report key     → raises UnknownReportError before any DB call
- Fetch failure          → raises FetchError; the session keeps its prior result
- Superseded completion  → result returned to its caller but not displayed
- Export / email failure → raises ExportError; the displayed result is kept

The build step is a pure function of the fetched records and the query
parameters that influence it, so its output is memoised on exactly those.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Literal

from sqlalchemy.orm import Session

from app.config import ReportSettings, get_report_settings
from app.domain.records import FetchResult
from app.domain.report import ReportQuery, ReportResult
from app.errors import ExportError, ReportValidationError, UnknownReportError
from app.services.export_service import ReportExporter, get_report_exporter
from app.services.notification_service import EmailNotifier, get_email_notifier
from app.services.report_definitions import (
    EXTRA_JOBS_ASSIGNED,
    EXTRA_SALES_TARGETS,
    EXTRA_STATUS_CATALOGUE,
    FAMILY_CREDIT_TRANSACTIONS,
    FAMILY_DEALS,
    FAMILY_STATUS_CHANGES,
    REPORT_DEFINITIONS,
    BuildContext,
    BuildOutput,
    ReportDefinition,
)
from app.services.report_session import ReportSession, ReportSessionRegistry
from app.services.row_fetcher import RowFetcher

logger = logging.getLogger(__name__)

ExportFormat = Literal["csv", "pdf"]

EXPORT_FORMATS: tuple[str, ...] = ("csv", "pdf")

_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "pdf": "application/pdf",
}

_BUILD_CACHE_SIZE = 64


@dataclass(frozen=True)
class ExportedFile:
    """
    Serialised report ready to stream.

    Attributes
    ----------
    content:
        Encoded file body.
    media_type:
        HTTP content type.
    filename:
        Suggested download name.
    """

    content: bytes
    media_type: str
    filename: str


class ReportOrchestrator:
    """
    Runs registered reports and tracks their per-key session state.

    Parameters
    ----------
    definitions:
        Report registry; defaults to :data:`REPORT_DEFINITIONS`.
    sessions:
        Session registry shared across requests.
    settings:
        Fetch timeout and row ceiling handed to each :class:`RowFetcher`.
    """

    def __init__(
        self,
        definitions: dict[str, ReportDefinition] | None = None,
        sessions: ReportSessionRegistry | None = None,
        settings: ReportSettings | None = None,
    ) -> None:
        self._definitions = definitions if definitions is not None else REPORT_DEFINITIONS
        self._sessions = sessions or ReportSessionRegistry()
        self._settings = settings or get_report_settings()
        self._build = lru_cache(maxsize=_BUILD_CACHE_SIZE)(self._build_uncached)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def list_reports(self) -> list[ReportDefinition]:
        return [self._definitions[key] for key in sorted(self._definitions)]

    def definition(self, report_key: str) -> ReportDefinition:
        """
        Raises
        ------
        UnknownReportError
            If *report_key* is not registered.
        """
        definition = self._definitions.get(report_key)
        if definition is None:
            raise UnknownReportError(
                f"Unknown report {report_key!r}. Valid reports: {sorted(self._definitions)}",
                field="report_key",
            )
        return definition

    def session_for(self, query: ReportQuery) -> ReportSession:
        return self._sessions.get(_session_key(query))

    def cache_info(self) -> Any:
        return self._build.cache_info()

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def run(self, query: ReportQuery, db: Session) -> ReportResult:
        """
        Fetch, group, compute and shape one report.

        Steps
        -----
        1. Resolve the report definition.
        2. Start a new session generation.
        3. Fetch records and the auxiliary lookups the report needs.
        4. Build rows (memoised on records and build parameters).
        5. Publish the result to the session if still current.

        Parameters
        ----------
        query:
            Validated report scope.
        db:
            Active SQLAlchemy session; read-only use.

        Returns
        -------
        ReportResult
            Tagged with the generation it was computed for.

        Raises
        ------
        UnknownReportError
            If the report key is not registered.
        FetchError
            If the backing store could not be read.
        """
        definition = self.definition(query.report_key)
        session = self.session_for(query)
        generation = session.begin_fetch()

        run_start = time.monotonic()
        logger.info(
            "ReportOrchestrator.run started report=%r org=%s range=[%s, %s] generation=%d",
            definition.key,
            query.organization_id or "*",
            query.date_from.isoformat(),
            query.date_to.isoformat(),
            generation,
        )

        try:
            fetched = self._fetch(definition, query, RowFetcher(db, self._settings))
        except Exception as exc:
            session.mark_fetch_failed(generation, str(exc))
            raise

        context = BuildContext(
            granularity=query.granularity,
            reference=query.date_to,
            team_members=query.team_members,
        )
        output = self._build(definition.key, fetched, context)
        session.mark_grouped(generation)

        result = ReportResult(
            report_key=definition.key,
            title=definition.title,
            columns=output.columns,
            rows=output.rows,
            generated_at=datetime.now(tz=timezone.utc),
            skipped_rows=fetched.skipped_rows,
            warnings=fetched.warnings,
            summary=output.summary,
            generation=generation,
        )
        if not session.mark_shaped(generation, result):
            logger.info(
                "ReportOrchestrator.run report=%r generation=%d superseded; result not displayed",
                definition.key,
                generation,
            )

        logger.info(
            "ReportOrchestrator.run completed report=%r records=%d rows=%d skipped=%d "
            "warnings=%d elapsed=%.3fs",
            definition.key,
            len(fetched.records),
            len(result.rows),
            result.skipped_rows,
            len(result.warnings),
            time.monotonic() - run_start,
        )
        return result

    def export(
        self,
        query: ReportQuery,
        result: ReportResult,
        fmt: str,
        exporter: ReportExporter | None = None,
    ) -> ExportedFile:
        """
        Serialise *result* as CSV or PDF.

        Raises
        ------
        ReportValidationError
            If *fmt* is not a supported format.
        ExportError
            If serialisation fails; the displayed result is kept.
        """
        if fmt not in EXPORT_FORMATS:
            raise ReportValidationError(
                f"Unsupported export format {fmt!r}; expected one of {list(EXPORT_FORMATS)}",
                field="format",
            )
        exporter = exporter or get_report_exporter()
        session = self.session_for(query)
        tracked = session.begin_export(result.generation)

        try:
            if fmt == "csv":
                content = exporter.to_csv(result).encode("utf-8")
            else:
                content = exporter.to_pdf(result)
        except ExportError as exc:
            if tracked:
                session.mark_export_failed(result.generation, str(exc))
            raise

        if tracked:
            session.mark_exported(result.generation)
        return ExportedFile(
            content=content,
            media_type=_MEDIA_TYPES[fmt],
            filename=exporter.filename(result, fmt),
        )

    def email(
        self,
        query: ReportQuery,
        result: ReportResult,
        *,
        recipients: list[str],
        subject: str | None,
        message: str | None,
        payload: dict[str, Any],
        notifier: EmailNotifier | None = None,
    ) -> None:
        """
        Send *payload* (the serialised *result*) to *recipients*.

        Raises
        ------
        ExportError
            If the email collaborator rejects the request or cannot be
            reached; the displayed result is kept.
        """
        notifier = notifier or get_email_notifier()
        session = self.session_for(query)
        tracked = session.begin_export(result.generation)

        try:
            notifier.send_report(
                recipients=recipients,
                subject=subject or result.title,
                report=payload,
                message=message,
            )
        except ExportError as exc:
            if tracked:
                session.mark_export_failed(result.generation, str(exc))
            raise

        if tracked:
            session.mark_exported(result.generation)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fetch(self, definition: ReportDefinition, query: ReportQuery, fetcher: RowFetcher) -> FetchResult:
        window = {
            "date_from": query.date_from,
            "date_to": query.date_to,
            "organization_id": query.organization_id,
        }

        if definition.family == FAMILY_STATUS_CHANGES:
            fetched = fetcher.fetch_status_changes(
                **window, team_members=query.team_members, statuses=query.statuses
            )
        elif definition.family == FAMILY_DEALS:
            fetched = fetcher.fetch_deals(
                **window, team_members=query.team_members, statuses=query.statuses
            )
        elif definition.family == FAMILY_CREDIT_TRANSACTIONS:
            fetched = fetcher.fetch_credit_transactions(**window, statuses=query.statuses)
        else:
            raise UnknownReportError(
                f"Report {definition.key!r} has no fetcher for family {definition.family!r}"
            )

        extras: list[tuple[str, Any]] = []
        for name in definition.extras:
            if name == EXTRA_STATUS_CATALOGUE:
                value: Any = fetcher.fetch_status_catalogue(organization_id=query.organization_id)
            elif name == EXTRA_JOBS_ASSIGNED:
                value = fetcher.fetch_jobs_assigned(**window)
            elif name == EXTRA_SALES_TARGETS:
                value = fetcher.fetch_sales_targets(**window)
            else:
                raise UnknownReportError(f"Report {definition.key!r} requests unknown lookup {name!r}")
            extras.append((name, value))

        return replace(fetched, extras=tuple(extras))

    def _build_uncached(self, report_key: str, fetched: FetchResult, context: BuildContext) -> BuildOutput:
        logger.debug(
            "Building report=%r records=%d granularity=%s",
            report_key,
            len(fetched.records),
            context.granularity,
        )
        return self._definitions[report_key].build(fetched, context)


def _session_key(query: ReportQuery) -> str:
    return f"{query.organization_id or '*'}:{query.report_key}"


# ---------------------------------------------------------------------------
# Singleton factory
# ---------------------------------------------------------------------------


_orchestrator: ReportOrchestrator | None = None


def get_report_orchestrator() -> ReportOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ReportOrchestrator()
    return _orchestrator
