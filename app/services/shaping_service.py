"""
app/services/shaping_service.py

Shape/sort adapter: turns the reducer's ``{key: Accumulator}`` mapping into
an ordered tuple of immutable :class:`MetricRow` objects.

Ordering rules
--------------
Rows
    1. ``row_order`` when given: listed keys first, in that order; anything
       else follows alphabetically.
    2. ``sort_by_metric`` when given: descending on that metric, ties broken
       alphabetically.
    3. Otherwise alphabetical on the label, case-insensitive, ties broken by
       the raw label.
Categories
    Always the explicit canonical list, zero-filled for missing categories.
    Categories outside the list are appended alphabetically only when
    ``include_unlisted_categories`` is set. With no canonical list the union
    of observed categories is used, alphabetically.

The adapter is pure: the same mapping and spec always produce an identical
tuple.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.domain.report import Accumulator, ColumnSpec, MetricRow

logger = logging.getLogger(__name__)


def _record_count(acc: Accumulator) -> float:
    return acc.record_count


def _alphabetical(label: str) -> tuple[str, str]:
    return (label.casefold(), label)


@dataclass(frozen=True)
class ShapeSpec:
    """
    Presentation contract for one report.

    Attributes
    ----------
    categories:
        Canonical category order for the breakdown.
    include_unlisted_categories:
        Append categories missing from ``categories`` (alphabetically).
    row_order:
        Explicit row order; unlisted rows follow alphabetically.
    sort_by_metric:
        Metric name to sort rows by, descending.
    metrics_fn:
        Derives the ordered metric mapping for one accumulator.
    total_fn:
        Derives ``MetricRow.total``; defaults to the record count.
    """

    categories: tuple[str, ...] = ()
    include_unlisted_categories: bool = False
    row_order: tuple[str, ...] | None = None
    sort_by_metric: str | None = None
    metrics_fn: Callable[[Accumulator], Mapping[str, Any]] | None = None
    total_fn: Callable[[Accumulator], float] = _record_count


class ShapeAdapter:
    """
    Stateless converter from accumulators to presentation rows.
    """

    def shape(self, groups: Mapping[str, Accumulator], spec: ShapeSpec) -> tuple[MetricRow, ...]:
        """
        Build the ordered row tuple for *groups*.

        Parameters
        ----------
        groups:
            Reducer output. Not mutated.
        spec:
            Ordering and metric derivation for this report.

        Returns
        -------
        tuple[MetricRow, ...]
            Empty when *groups* is empty.
        """
        if not groups:
            return ()

        category_order = self._category_order(groups.values(), spec)
        rows = [self._build_row(acc, category_order, spec) for acc in groups.values()]
        ordered = tuple(self._order_rows(rows, spec))
        logger.debug(
            "ShapeAdapter.shape rows=%d categories=%d",
            len(ordered),
            len(category_order),
        )
        return ordered

    def table(self, rows: Sequence[MetricRow], columns: Sequence[ColumnSpec]) -> list[dict[str, Any]]:
        """
        Flatten *rows* into plain dicts keyed by column label.

        Missing or ``None`` values render as ``0``.
        """
        return [{column.label: self.cell(row, column) for column in columns} for row in rows]

    @staticmethod
    def cell(row: MetricRow, column: ColumnSpec) -> Any:
        source = column.source
        if source == "label":
            return row.label
        if source == "total":
            value = row.total
        elif source.startswith("metric:"):
            value = row.metric(source[len("metric:"):], None)
        elif source.startswith("category:"):
            value = row.category(source[len("category:"):], None)
        else:
            raise ValueError(f"Unknown column source {source!r}")
        return 0 if value is None else value

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _category_order(accumulators: Iterable[Accumulator], spec: ShapeSpec) -> tuple[str, ...]:
        observed: set[str] = set()
        for acc in accumulators:
            observed.update(acc.category_counts)
        if not spec.categories:
            return tuple(sorted(observed, key=_alphabetical))
        order = list(spec.categories)
        if spec.include_unlisted_categories:
            listed = set(order)
            order.extend(sorted(observed - listed, key=_alphabetical))
        return tuple(order)

    @staticmethod
    def _build_row(acc: Accumulator, category_order: tuple[str, ...], spec: ShapeSpec) -> MetricRow:
        metrics = tuple(spec.metrics_fn(acc).items()) if spec.metrics_fn is not None else ()
        breakdown = tuple((category, acc.category_counts.get(category, 0)) for category in category_order)
        series = tuple(
            (
                bucket,
                tuple(
                    (category, acc.series[bucket].get(category, 0))
                    for category in category_order
                ),
            )
            for bucket in sorted(acc.series)
        )
        return MetricRow(
            label=acc.key,
            total=spec.total_fn(acc),
            metrics=metrics,
            breakdown=breakdown,
            series=series,
        )

    @staticmethod
    def _order_rows(rows: list[MetricRow], spec: ShapeSpec) -> list[MetricRow]:
        alphabetical = sorted(rows, key=lambda r: _alphabetical(r.label))

        if spec.row_order is not None:
            by_label = {row.label: row for row in rows}
            listed = [by_label[label] for label in spec.row_order if label in by_label]
            listed_labels = {row.label for row in listed}
            return listed + [row for row in alphabetical if row.label not in listed_labels]

        if spec.sort_by_metric is not None:
            name = spec.sort_by_metric
            # stable sort on the alphabetical order keeps ties alphabetical
            return sorted(alphabetical, key=lambda r: r.metric(name, 0) or 0, reverse=True)

        return alphabetical
