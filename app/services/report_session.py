"""
app/services/report_session.py

Per-report session state and request generations.

State machine
-------------
::

    IDLE ──► FETCHING ──► GROUPED ──► SHAPED ──► IDLE
                │                        │
                ▼                        ▼
           FETCH_FAILED              EXPORTING ──► IDLE
                                         │
                                         ▼
                                    EXPORT_FAILED

A new fetch may start from any resting state and from ``FETCHING`` itself;
starting it issues a new generation. Completions carry the generation they
were issued for and are applied only when it is still the latest one, so a
slow stale response never overwrites a fresher result. Stale completions are
dropped and logged, not raised.

A failed fetch leaves the displayed result untouched.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import replace

from app.domain.report import ReportResult
from app.errors import ReportStateError

logger = logging.getLogger(__name__)


class ReportState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    GROUPED = "grouped"
    SHAPED = "shaped"
    EXPORTING = "exporting"
    EXPORT_FAILED = "export_failed"


_TRANSITIONS: dict[ReportState, frozenset[ReportState]] = {
    ReportState.IDLE: frozenset({ReportState.FETCHING}),
    ReportState.FETCHING: frozenset(
        {ReportState.FETCHING, ReportState.FETCH_FAILED, ReportState.GROUPED}
    ),
    ReportState.FETCH_FAILED: frozenset({ReportState.FETCHING, ReportState.IDLE}),
    ReportState.GROUPED: frozenset({ReportState.SHAPED, ReportState.FETCHING}),
    ReportState.SHAPED: frozenset(
        {ReportState.IDLE, ReportState.EXPORTING, ReportState.FETCHING}
    ),
    ReportState.EXPORTING: frozenset(
        {ReportState.EXPORT_FAILED, ReportState.IDLE, ReportState.FETCHING}
    ),
    ReportState.EXPORT_FAILED: frozenset({ReportState.IDLE, ReportState.FETCHING}),
}


class ReportSession:
    """
    Thread-safe state holder for one report key.

    Attributes
    ----------
    key:
        Session key (report key, optionally scoped by organisation).
    """

    def __init__(self, key: str) -> None:
        self.key = key
        self._lock = threading.Lock()
        self._state = ReportState.IDLE
        self._generation = 0
        self._result: ReportResult | None = None
        self._last_error: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ReportState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def result(self) -> ReportResult | None:
        """The currently displayed result."""
        return self._result

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------------
    # Fetch lifecycle
    # ------------------------------------------------------------------

    def begin_fetch(self) -> int:
        """
        Enter ``FETCHING`` and issue a new generation.

        Any in-flight fetch becomes stale.
        """
        with self._lock:
            self._transition(ReportState.FETCHING)
            self._generation += 1
            self._last_error = None
            logger.debug("ReportSession %s begin_fetch generation=%d", self.key, self._generation)
            return self._generation

    def mark_grouped(self, generation: int) -> bool:
        with self._lock:
            if not self._accept(generation, "grouped"):
                return False
            self._transition(ReportState.GROUPED)
            return True

    def mark_shaped(self, generation: int, result: ReportResult) -> bool:
        """
        Display *result* if *generation* is still current.

        Returns
        -------
        bool
            ``False`` when the completion was stale and discarded.
        """
        with self._lock:
            if not self._accept(generation, "shaped"):
                return False
            self._transition(ReportState.SHAPED)
            self._result = replace(result, generation=generation)
            return True

    def mark_fetch_failed(self, generation: int, error: str) -> bool:
        """Record a failed fetch; the displayed result is kept."""
        with self._lock:
            if not self._accept(generation, "fetch_failed"):
                return False
            self._transition(ReportState.FETCH_FAILED)
            self._last_error = error
            return True

    # ------------------------------------------------------------------
    # Export lifecycle
    # ------------------------------------------------------------------

    def begin_export(self, generation: int) -> bool:
        with self._lock:
            if not self._accept(generation, "begin_export"):
                return False
            self._transition(ReportState.EXPORTING)
            return True

    def mark_exported(self, generation: int) -> bool:
        with self._lock:
            if not self._accept(generation, "exported"):
                return False
            self._transition(ReportState.IDLE)
            return True

    def mark_export_failed(self, generation: int, error: str) -> bool:
        """Record a failed export; the displayed result is kept."""
        with self._lock:
            if not self._accept(generation, "export_failed"):
                return False
            self._transition(ReportState.EXPORT_FAILED)
            self._last_error = error
            return True

    def reset(self) -> None:
        """Return to ``IDLE`` from a resting state."""
        with self._lock:
            if self._state is not ReportState.IDLE:
                self._transition(ReportState.IDLE)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _accept(self, generation: int, event: str) -> bool:
        if generation != self._generation:
            logger.warning(
                "ReportSession %s dropped stale %s generation=%d latest=%d",
                self.key,
                event,
                generation,
                self._generation,
            )
            return False
        return True

    def _transition(self, target: ReportState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise ReportStateError(
                f"Illegal report state transition {self._state.value} -> {target.value} "
                f"for {self.key!r}"
            )
        self._state = target


class ReportSessionRegistry:
    """
    One :class:`ReportSession` per key, created on first use.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, ReportSession] = {}

    def get(self, key: str) -> ReportSession:
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = ReportSession(key)
                self._sessions[key] = session
            return session

    def __len__(self) -> int:
        return len(self._sessions)
