"""
app/services/grouping_service.py

Grouping reducer: partitions validated records into per-key accumulators.

Contract
--------
- Keys are normalised (trimmed, optionally case-folded) before grouping.
- ``None`` or blank keys land in the reserved ``unknown_label`` bucket; no
  non-excluded record is ever dropped, so
  ``sum(acc.record_count) == count(non-excluded records)``.
- A dedup key contributes to the distinct-entity count of exactly one
  accumulator: the first one that claims it.
- Accumulators are only ever incremented.

No I/O lives here; the reducer is a pure function of its inputs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, TypeVar

from app.domain.report import Accumulator, Granularity

logger = logging.getLogger(__name__)

R = TypeVar("R")

UNKNOWN_LABEL = "Unknown"
UNCATEGORIZED_LABEL = "Uncategorized"


def normalize_key(
    raw: Any,
    *,
    casefold: bool = False,
    unknown_label: str = UNKNOWN_LABEL,
) -> str:
    """
    Trim *raw* and optionally case-fold it.

    Returns *unknown_label* when the value is ``None`` or blank.
    """
    if raw is None:
        return unknown_label
    text = str(raw).strip()
    if not text:
        return unknown_label
    return text.casefold() if casefold else text


def time_bucket(timestamp: datetime, granularity: Granularity = "day") -> str:
    """
    Return the bucket label for *timestamp*.

    ``day``   -> ``YYYY-MM-DD``
    ``week``  -> ``YYYY-MM-DD`` of the Sunday that starts the week
    ``month`` -> ``YYYY-MM``
    """
    day = timestamp.date()
    if granularity == "day":
        return day.isoformat()
    if granularity == "week":
        # isoweekday: Monday=1 .. Sunday=7
        offset = day.isoweekday() % 7
        return (day - timedelta(days=offset)).isoformat()
    if granularity == "month":
        return f"{day.year:04d}-{day.month:02d}"
    raise ValueError(f"Unknown granularity {granularity!r}; expected day, week or month")


def latest_per_entity(
    records: Iterable[R],
    entity_fn: Callable[[R], Any],
    ts_fn: Callable[[R], datetime],
) -> list[R]:
    """
    Keep only the most recent record per entity.

    Ties keep the record seen first. Output preserves the order in which
    entities were first encountered.
    """
    latest: dict[Any, R] = {}
    for record in records:
        entity = entity_fn(record)
        current = latest.get(entity)
        if current is None or ts_fn(record) > ts_fn(current):
            latest[entity] = record
    return list(latest.values())


class GroupingReducer:
    """
    Folds records into a ``{key: Accumulator}`` mapping.

    Stateless; one instance can be shared across report runs.
    """

    def reduce(
        self,
        records: Iterable[R],
        *,
        key_fn: Callable[[R], Any],
        exclude: Callable[[R], bool] | None = None,
        casefold: bool = False,
        unknown_label: str = UNKNOWN_LABEL,
        entity_fn: Callable[[R], Any] | None = None,
        dedup_key: Callable[[R], Any] | None = None,
        category_fn: Callable[[R], Any] | None = None,
        weight_fn: Callable[[R], float] | None = None,
        value_fn: Callable[[R], float] | None = None,
        counter_fns: Mapping[str, Callable[[R], float]] | None = None,
        bucket_fn: Callable[[R], str] | None = None,
        timestamp_fn: Callable[[R], datetime | None] | None = None,
        seed_keys: Iterable[str] = (),
    ) -> dict[str, Accumulator]:
        """
        Partition *records* by ``key_fn`` into accumulators.

        Parameters
        ----------
        records:
            Validated records in fetch order.
        key_fn:
            Derives the raw aggregation key; normalised with
            :func:`normalize_key`.
        exclude:
            Predicate for records to skip entirely. Excluded records do not
            count towards conservation.
        casefold:
            Case-fold keys before grouping.
        unknown_label:
            Bucket for ``None`` / blank keys.
        entity_fn:
            Distinct entity id added to ``entity_ids``. Ignored when
            ``dedup_key`` is given.
        dedup_key:
            Composite key; only the first accumulator to see a given key adds
            it to its ``entity_ids``.
        category_fn:
            Category label; its count is increased by ``weight_fn`` (default 1).
            Returning ``None`` skips the category update for that record.
        weight_fn:
            Weight for category and series increments.
        value_fn:
            Numeric value summed into ``total``; the last one seen is kept as
            ``last_value``.
        counter_fns:
            Named counters, each increased by the function's return value.
        bucket_fn:
            Time bucket for the per-key series; requires ``category_fn``.
        timestamp_fn:
            Timestamp feeding ``first_seen`` / ``last_seen``.
        seed_keys:
            Keys that must appear in the output even with no records.

        Returns
        -------
        dict[str, Accumulator]
            Insertion-ordered mapping; presentation order is decided later by
            the shaper.
        """
        groups: dict[str, Accumulator] = {}
        for seed in seed_keys:
            key = normalize_key(seed, casefold=casefold, unknown_label=unknown_label)
            groups.setdefault(key, Accumulator(key=key))

        claimed: set[Any] = set()
        ingested = 0
        excluded = 0

        for record in records:
            if exclude is not None and exclude(record):
                excluded += 1
                continue

            key = normalize_key(key_fn(record), casefold=casefold, unknown_label=unknown_label)
            acc = groups.get(key)
            if acc is None:
                acc = Accumulator(key=key)
                groups[key] = acc

            acc.record_count += 1
            ingested += 1

            if dedup_key is not None:
                composite = dedup_key(record)
                if composite not in claimed:
                    claimed.add(composite)
                    acc.entity_ids.add(str(composite))
            elif entity_fn is not None:
                entity = entity_fn(record)
                if entity is not None:
                    acc.entity_ids.add(str(entity))

            weight = weight_fn(record) if weight_fn is not None else 1

            if category_fn is not None:
                category = category_fn(record)
                if category is not None:
                    acc.add_category(str(category), weight)
                    if bucket_fn is not None:
                        acc.add_series_point(bucket_fn(record), str(category), weight)

            if value_fn is not None:
                value = value_fn(record)
                acc.total += value
                acc.last_value = value

            if counter_fns:
                for name, fn in counter_fns.items():
                    amount = fn(record)
                    if amount:
                        acc.add_counter(name, amount)

            if timestamp_fn is not None:
                acc.observe(timestamp_fn(record))

        logger.debug(
            "GroupingReducer.reduce ingested=%d excluded=%d groups=%d deduped_keys=%d",
            ingested,
            excluded,
            len(groups),
            len(claimed),
        )
        return groups
