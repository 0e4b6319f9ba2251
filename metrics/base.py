"""
metrics/base.py

Abstract base class and shared helpers for metric formula implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any


class BaseMetricFormula(ABC):
    """
    One report or calculator formula.

    Report formulas take the counters of a single grouped row (or the team
    totals); payroll and billing formulas take the validated request body.
    Either way ``calculate`` maps that dict to the row's output columns and
    must be deterministic: the orchestrator memoises builds on their inputs.
    """

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Turn grouped counters or request amounts into output values.

        Parameters
        ----------
        inputs:
            Keys documented on each formula's module.

        Returns
        -------
        dict[str, Any]
            Output values keyed by column / field name; rates are already
            zero-guarded through :func:`safe_rate`.
        """


def safe_rate(numerator: float, denominator: float, *, percent: bool = False) -> float:
    """
    numerator / denominator, or ``0.0`` when the denominator is zero.

    Never returns NaN or infinity. ``percent=True`` scales the result by 100.
    """
    if not denominator:
        return 0.0
    rate = float(numerator) / float(denominator)
    return rate * 100.0 if percent else rate


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats, strings and ``None`` to ``Decimal`` (``None`` -> 0)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
