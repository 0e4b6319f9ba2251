"""
app/domain/report.py

Value objects passed between the reducer, the shaper, the exporters and the
HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Granularity = Literal["day", "week", "month"]


@dataclass
class Accumulator:
    """
    Running totals for one aggregation key.

    Created on the first record for a key and only ever incremented for the
    lifetime of one report computation.
    """

    key: str
    record_count: int = 0
    total: float = 0.0
    entity_ids: set[str] = field(default_factory=set)
    category_counts: dict[str, float] = field(default_factory=dict)
    counters: dict[str, float] = field(default_factory=dict)
    series: dict[str, dict[str, float]] = field(default_factory=dict)
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    last_value: float | None = None

    @property
    def distinct_entities(self) -> int:
        return len(self.entity_ids)

    def add_category(self, category: str, amount: float = 1) -> None:
        self.category_counts[category] = self.category_counts.get(category, 0) + amount

    def add_counter(self, name: str, amount: float = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + amount

    def add_series_point(self, bucket: str, category: str, amount: float = 1) -> None:
        point = self.series.setdefault(bucket, {})
        point[category] = point.get(category, 0) + amount

    def observe(self, timestamp: datetime | None) -> None:
        if timestamp is None:
            return
        if self.first_seen is None or timestamp < self.first_seen:
            self.first_seen = timestamp
        if self.last_seen is None or timestamp >= self.last_seen:
            self.last_seen = timestamp


@dataclass(frozen=True)
class MetricRow:
    """
    Finalised output for one key.

    ``metrics`` and ``breakdown`` are ordered ``(name, value)`` pairs;
    ``series`` holds ``(bucket, ((category, value), ...))`` pairs sorted by
    bucket.
    """

    label: str
    total: float
    metrics: tuple[tuple[str, Any], ...] = ()
    breakdown: tuple[tuple[str, float], ...] = ()
    series: tuple[tuple[str, tuple[tuple[str, float], ...]], ...] = ()

    def metric(self, name: str, default: Any = 0) -> Any:
        for key, value in self.metrics:
            if key == name:
                return value
        return default

    def category(self, name: str, default: float = 0) -> float:
        for key, value in self.breakdown:
            if key == name:
                return value
        return default


@dataclass(frozen=True)
class ColumnSpec:
    """
    One exported column.

    ``source`` is ``"label"``, ``"total"``, ``"metric:<name>"`` or
    ``"category:<name>"``.
    """

    label: str
    source: str


@dataclass(frozen=True)
class ReportQuery:
    """
    Scope of one report invocation.
    """

    report_key: str
    date_from: datetime
    date_to: datetime
    organization_id: str | None = None
    team_members: tuple[str, ...] = ()
    statuses: tuple[str, ...] = ()
    granularity: Granularity = "day"


@dataclass(frozen=True)
class ReportResult:
    """
    Structured output of one orchestrator run.

    Attributes
    ----------
    report_key:
        Registry key of the report that ran.
    title:
        Display title used by the PDF exporter and the email payload.
    columns:
        Fixed column list for tables and exports.
    rows:
        Shaped rows in presentation order. Empty when nothing matched.
    generated_at:
        UTC timestamp when the run completed.
    skipped_rows:
        Rows dropped at the fetch boundary.
    warnings:
        Partial-data warnings, rendered next to the table.
    summary:
        Report-level figures that are not per-row (overall verification
        stats, projections, funnel totals).
    generation:
        Session generation the result belongs to.
    """

    report_key: str
    title: str
    columns: tuple[ColumnSpec, ...]
    rows: tuple[MetricRow, ...]
    generated_at: datetime
    skipped_rows: int = 0
    warnings: tuple[Any, ...] = ()
    summary: tuple[tuple[str, Any], ...] = ()
    generation: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.rows
