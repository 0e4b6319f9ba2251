"""
metrics/sales.py

Sales CRM formula implementations.

Expected inputs (SalesPerformanceFormula)
-----------------------------------------
won_deals : int
lost_deals : int
total_revenue : float
    Sum of won deal values.
cycle_days_total : float
    Sum of days from creation to close over won deals that carry a close date.
cycle_count : int
    Number of won deals that carry a close date.
target_revenue : float
    Sum of matching sales targets; 0 when none is defined.

Formulas
--------
Win Rate            = won / (won + lost) * 100
Average Deal Size   = total_revenue / won
Average Sales Cycle = cycle_days_total / cycle_count
Achievement         = total_revenue / target_revenue * 100
Conversion Rate     = won / total_deals * 100

Every ratio is 0 when its denominator is 0.
"""

from __future__ import annotations

from typing import Any

from metrics.base import BaseMetricFormula, safe_rate

PIPELINE_STAGE_ORDER: tuple[str, ...] = (
    "Prospecting",
    "Qualification",
    "Proposal",
    "Negotiation",
    "Closed Won",
    "Closed Lost",
)

STATUS_WON = "Won"
STATUS_LOST = "Lost"


class SalesPipelineFormula(BaseMetricFormula):
    """Count, value and average deal size for one pipeline stage."""

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        count = int(inputs.get("count", 0))
        total_value = float(inputs.get("total_value", 0.0))
        return {
            "count": count,
            "total_value": total_value,
            "average_deal_size": safe_rate(total_value, count),
        }


class SalesPerformanceFormula(BaseMetricFormula):
    """
    Deterministic owner performance metrics with zero-denominator handling.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute win rate, deal size, cycle length and target achievement.

        Parameters
        ----------
        inputs:
            Dictionary containing the keys listed in the module docstring.

        Returns
        -------
        dict
            Keys: ``won_deals``, ``lost_deals``, ``total_revenue``,
            ``win_rate``, ``average_deal_size``, ``average_sales_cycle_days``,
            ``target_revenue``, ``achievement_percentage``.
        """
        won = int(inputs.get("won_deals", 0))
        lost = int(inputs.get("lost_deals", 0))
        revenue = float(inputs.get("total_revenue", 0.0))
        cycle_days_total = float(inputs.get("cycle_days_total", 0.0))
        cycle_count = int(inputs.get("cycle_count", 0))
        target = float(inputs.get("target_revenue", 0.0))

        return {
            "won_deals": won,
            "lost_deals": lost,
            "total_revenue": revenue,
            "win_rate": _win_rate(won, lost),
            "average_deal_size": safe_rate(revenue, won),
            "average_sales_cycle_days": safe_rate(cycle_days_total, cycle_count),
            "target_revenue": target,
            "achievement_percentage": safe_rate(revenue, target, percent=True),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _win_rate(won: int, lost: int) -> float:
    """Win Rate = won / (won + lost) * 100; 0 when no deal is closed."""
    return safe_rate(won, won + lost, percent=True)


def conversion_rate(won: int, total_deals: int) -> float:
    """Conversion Rate = won / total_deals * 100; 0 when there are no deals."""
    return safe_rate(won, total_deals, percent=True)
