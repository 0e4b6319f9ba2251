"""
tests/test_shaping_service.py

Pytest unit tests for ShapeAdapter.

Coverage
--------
- Idempotence: same mapping in, identical tuple out
- Alphabetical, explicit and metric-driven row ordering
- Canonical category order with zero-fill
- Unlisted categories appended only on request
- Series zero-filled in category order
- table() and cell() flattening
"""

from __future__ import annotations

import pytest

from app.domain.report import Accumulator, ColumnSpec, MetricRow
from app.services.shaping_service import ShapeAdapter, ShapeSpec


def _acc(key: str, categories: dict[str, float] | None = None, records: int = 1) -> Accumulator:
    acc = Accumulator(key=key, record_count=records)
    for name, amount in (categories or {}).items():
        acc.add_category(name, amount)
    return acc


@pytest.fixture()
def shaper() -> ShapeAdapter:
    return ShapeAdapter()


@pytest.fixture()
def groups() -> dict[str, Accumulator]:
    return {
        "beta": _acc("beta", {"Joined": 1}, records=1),
        "Acme": _acc("Acme", {"Processed": 1, "Interview": 1}, records=2),
        "acme": _acc("acme", {"Offered": 2}, records=3),
    }


class TestShape:
    def test_empty_mapping(self, shaper: ShapeAdapter) -> None:
        assert shaper.shape({}, ShapeSpec()) == ()

    def test_idempotent(self, shaper: ShapeAdapter, groups: dict[str, Accumulator]) -> None:
        spec = ShapeSpec(categories=("Processed", "Interview", "Offered", "Joined"))
        assert shaper.shape(groups, spec) == shaper.shape(groups, spec)

    def test_does_not_mutate_input(self, shaper: ShapeAdapter, groups: dict[str, Accumulator]) -> None:
        before = {key: (acc.record_count, dict(acc.category_counts)) for key, acc in groups.items()}
        shaper.shape(groups, ShapeSpec(categories=("Joined",)))
        after = {key: (acc.record_count, dict(acc.category_counts)) for key, acc in groups.items()}
        assert before == after

    def test_alphabetical_case_insensitive_with_raw_tiebreak(
        self, shaper: ShapeAdapter, groups: dict[str, Accumulator]
    ) -> None:
        rows = shaper.shape(groups, ShapeSpec())
        assert [row.label for row in rows] == ["Acme", "acme", "beta"]

    def test_explicit_row_order_then_alphabetical(self, shaper: ShapeAdapter) -> None:
        groups = {key: _acc(key) for key in ("Zeta", "Proposal", "Alpha", "Prospecting")}
        rows = shaper.shape(groups, ShapeSpec(row_order=("Prospecting", "Proposal", "Missing")))
        assert [row.label for row in rows] == ["Prospecting", "Proposal", "Alpha", "Zeta"]

    def test_sort_by_metric_descending_ties_alphabetical(self, shaper: ShapeAdapter) -> None:
        groups = {"b": _acc("b", records=2), "a": _acc("a", records=2), "c": _acc("c", records=5)}
        spec = ShapeSpec(
            sort_by_metric="records",
            metrics_fn=lambda acc: {"records": acc.record_count},
        )
        assert [row.label for row in shaper.shape(groups, spec)] == ["c", "a", "b"]

    def test_breakdown_follows_canonical_order_zero_filled(
        self, shaper: ShapeAdapter, groups: dict[str, Accumulator]
    ) -> None:
        spec = ShapeSpec(categories=("Processed", "Interview", "Offered", "Joined"))
        beta = [row for row in shaper.shape(groups, spec) if row.label == "beta"][0]
        assert beta.breakdown == (("Processed", 0), ("Interview", 0), ("Offered", 0), ("Joined", 1))

    def test_unlisted_categories(self, shaper: ShapeAdapter) -> None:
        groups = {"x": _acc("x", {"Zed": 1, "Alpha": 1, "Listed": 1})}
        strict = shaper.shape(groups, ShapeSpec(categories=("Listed",)))
        assert [name for name, _ in strict[0].breakdown] == ["Listed"]
        loose = shaper.shape(groups, ShapeSpec(categories=("Listed",), include_unlisted_categories=True))
        assert [name for name, _ in loose[0].breakdown] == ["Listed", "Alpha", "Zed"]

    def test_series_zero_filled(self, shaper: ShapeAdapter) -> None:
        acc = _acc("x")
        acc.add_series_point("2026-03-02", "B")
        acc.add_series_point("2026-03-01", "A", 2)
        acc.add_category("A", 2)
        acc.add_category("B")
        rows = shaper.shape({"x": acc}, ShapeSpec())
        assert rows[0].series == (
            ("2026-03-01", (("A", 2), ("B", 0))),
            ("2026-03-02", (("A", 0), ("B", 1))),
        )

    def test_total_fn(self, shaper: ShapeAdapter) -> None:
        acc = _acc("x", records=4)
        acc.entity_ids.update({"c1", "c2"})
        rows = shaper.shape({"x": acc}, ShapeSpec(total_fn=lambda a: a.distinct_entities))
        assert rows[0].total == 2


class TestTable:
    COLUMNS = (
        ColumnSpec("Client", "label"),
        ColumnSpec("Total", "total"),
        ColumnSpec("Rate", "metric:rate"),
        ColumnSpec("Joined", "category:Joined"),
    )

    def test_missing_values_render_as_zero(self, shaper: ShapeAdapter) -> None:
        row = MetricRow(label="Acme", total=3, metrics=(("rate", None),))
        assert shaper.table([row], self.COLUMNS) == [{"Client": "Acme", "Total": 3, "Rate": 0, "Joined": 0}]

    def test_unknown_source(self) -> None:
        with pytest.raises(ValueError):
            ShapeAdapter.cell(MetricRow(label="x", total=0), ColumnSpec("Bad", "nope"))
