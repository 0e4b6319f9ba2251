"""
app/errors.py

Exception taxonomy shared by the report pipeline, the calculators and the
HTTP layer.

Mapping to HTTP status codes lives in the routers; nothing here knows about
FastAPI.

    ReportError
    ├── FetchError             backend read failed                       → 502
    ├── ReportValidationError  input precondition failed                 → 400 / 422
    │   └── UnknownReportError report key not registered                 → 404
    ├── ExportError            CSV / PDF / email failed                  → 502
    └── ReportStateError       illegal report session transition         → 409

``PartialDataWarning`` is not raised; instances are collected on the
result so callers can render a placeholder instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass


class ReportError(RuntimeError):
    """Base class for every failure raised by the report pipeline."""


class FetchError(ReportError):
    """
    Raised when the backing database cannot serve a report query.

    The report session keeps whatever result it displayed before the fetch.
    """


class ReportValidationError(ReportError, ValueError):
    """
    Raised before any database call when caller input is invalid
    (end date before start date, non-positive amount, negative days).
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UnknownReportError(ReportValidationError):
    """Raised when a report key is not present in the report registry."""


class ExportError(ReportError):
    """
    Raised when serialisation or the outbound email call fails.

    Terminal for that user action; never retried.
    """


class ReportStateError(ReportError):
    """Raised on an illegal report session state transition."""


@dataclass(frozen=True)
class PartialDataWarning:
    """
    A referenced related entity was missing for some rows.

    Attributes
    ----------
    entity:
        Kind of entity that could not be resolved (``"client"``, ``"status"``).
    reference:
        Identifier that failed to resolve, rendered as text.
    message:
        Human readable description shown next to the report.
    """

    entity: str
    reference: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"entity": self.entity, "reference": self.reference, "message": self.message}
