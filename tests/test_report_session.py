"""
tests/test_report_session.py

Pytest unit tests for ReportSession and ReportSessionRegistry.

Coverage
--------
- Happy path IDLE -> FETCHING -> GROUPED -> SHAPED -> EXPORTING -> IDLE
- Stale completions are dropped, never displayed
- A failed fetch keeps the previously displayed result
- Illegal transitions raise ReportStateError
- Registry returns one session per key
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.domain.report import ReportResult
from app.errors import ReportStateError
from app.services.report_session import ReportSession, ReportSessionRegistry, ReportState


def _result(label: str = "first") -> ReportResult:
    return ReportResult(
        report_key="client_wise",
        title=label,
        columns=(),
        rows=(),
        generated_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )


@pytest.fixture()
def session() -> ReportSession:
    return ReportSession("*:client_wise")


class TestLifecycle:
    def test_full_cycle(self, session: ReportSession) -> None:
        generation = session.begin_fetch()
        assert session.state is ReportState.FETCHING
        assert session.mark_grouped(generation)
        assert session.mark_shaped(generation, _result())
        assert session.state is ReportState.SHAPED
        assert session.result is not None
        assert session.result.generation == generation

        assert session.begin_export(generation)
        assert session.state is ReportState.EXPORTING
        assert session.mark_exported(generation)
        assert session.state is ReportState.IDLE

    def test_export_failure_keeps_result(self, session: ReportSession) -> None:
        generation = session.begin_fetch()
        session.mark_grouped(generation)
        session.mark_shaped(generation, _result())
        session.begin_export(generation)
        assert session.mark_export_failed(generation, "smtp down")
        assert session.state is ReportState.EXPORT_FAILED
        assert session.last_error == "smtp down"
        assert session.result is not None

    def test_generations_increase(self, session: ReportSession) -> None:
        first = session.begin_fetch()
        second = session.begin_fetch()
        assert second == first + 1
        assert session.is_current(second)
        assert not session.is_current(first)


class TestStaleCompletions:
    def test_stale_shaped_is_dropped(self, session: ReportSession) -> None:
        old = session.begin_fetch()
        new = session.begin_fetch()

        assert not session.mark_grouped(old)
        assert not session.mark_shaped(old, _result("stale"))
        assert session.result is None
        assert session.state is ReportState.FETCHING

        session.mark_grouped(new)
        session.mark_shaped(new, _result("fresh"))
        assert session.result is not None
        assert session.result.title == "fresh"

    def test_late_stale_response_never_overwrites(self, session: ReportSession) -> None:
        old = session.begin_fetch()
        new = session.begin_fetch()
        session.mark_grouped(new)
        session.mark_shaped(new, _result("fresh"))

        assert not session.mark_shaped(old, _result("stale"))
        assert session.result is not None
        assert session.result.title == "fresh"

    def test_stale_export_is_not_tracked(self, session: ReportSession) -> None:
        old = session.begin_fetch()
        session.mark_grouped(old)
        session.mark_shaped(old, _result())
        session.begin_fetch()
        assert not session.begin_export(old)
        assert session.state is ReportState.FETCHING


class TestFailures:
    def test_failed_fetch_keeps_previous_result(self, session: ReportSession) -> None:
        first = session.begin_fetch()
        session.mark_grouped(first)
        session.mark_shaped(first, _result("shown"))

        second = session.begin_fetch()
        assert session.mark_fetch_failed(second, "connection refused")
        assert session.state is ReportState.FETCH_FAILED
        assert session.last_error == "connection refused"
        assert session.result is not None
        assert session.result.title == "shown"

    def test_refetch_after_failure(self, session: ReportSession) -> None:
        generation = session.begin_fetch()
        session.mark_fetch_failed(generation, "boom")
        retry = session.begin_fetch()
        assert session.state is ReportState.FETCHING
        assert session.last_error is None
        assert retry == generation + 1

    def test_shaped_before_grouped_is_illegal(self, session: ReportSession) -> None:
        generation = session.begin_fetch()
        with pytest.raises(ReportStateError):
            session.mark_shaped(generation, _result())

    def test_export_from_idle_is_illegal(self, session: ReportSession) -> None:
        with pytest.raises(ReportStateError):
            session.begin_export(0)

    def test_reset(self, session: ReportSession) -> None:
        generation = session.begin_fetch()
        session.mark_fetch_failed(generation, "boom")
        session.reset()
        assert session.state is ReportState.IDLE


class TestRegistry:
    def test_one_session_per_key(self) -> None:
        registry = ReportSessionRegistry()
        first = registry.get("*:client_wise")
        assert registry.get("*:client_wise") is first
        assert registry.get("org:client_wise") is not first
        assert len(registry) == 2
