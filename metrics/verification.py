"""
metrics/verification.py

Verification credit formulas: usage per type / source, overall ledger
statistics, week-over-week change and balance projections.

Transactions are duck-typed: any object exposing ``amount``,
``transaction_type``, ``balance_after`` and ``created_at`` works. Usage
amounts are stored negative; their absolute value is the cost.

Formulas
--------
Total Spent        = sum(|amount|) over usage
Total Topups       = sum(amount) over top-ups
Current Balance    = balance_after of the latest transaction
Avg Transaction    = total_spent / usage_count
Burn Rate          = total_spent / days between first and last transaction
Days Remaining     = round(current_balance / burn_rate), None when burn_rate is 0
WoW Change         = (last7 - previous7) / previous7 * 100
Projected Spend(m) = burn_rate * 30 * m
Projected Balance  = max(0, current_balance - projected_spend)
Needs Topup        = projected_balance < avg_transaction * 10
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from metrics.base import BaseMetricFormula, safe_rate

USAGE = "usage"
TOPUP = "topup"

_SECONDS_PER_DAY = 86_400.0
_PROJECTION_DAYS_PER_MONTH = 30
_TOPUP_BUFFER_TRANSACTIONS = 10


def _cost(transaction: Any) -> float:
    return abs(float(transaction.amount))


class VerificationUsageFormula(BaseMetricFormula):
    """Count, total cost and average cost for one verification type or source."""

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        count = int(inputs.get("count", 0))
        total_cost = float(inputs.get("total_cost", 0.0))
        return {
            "count": count,
            "total_cost": total_cost,
            "avg_cost": safe_rate(total_cost, count),
        }


class VerificationStatsFormula(BaseMetricFormula):
    """
    Ledger-wide statistics for one organisation.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute spend, top-ups, balance, burn rate and runway.

        Parameters
        ----------
        inputs:
            ``transactions``: sequence of ledger entries in any order.

        Returns
        -------
        dict
            Keys: ``total_spent``, ``total_topups``, ``current_balance``,
            ``avg_transaction_size``, ``burn_rate``, ``days_remaining``,
            ``total_usage_count``, ``total_topup_count``.
        """
        transactions = sorted(inputs.get("transactions") or [], key=lambda t: t.created_at)
        usage = [t for t in transactions if t.transaction_type == USAGE]
        topups = [t for t in transactions if t.transaction_type == TOPUP]

        total_spent = sum(_cost(t) for t in usage)
        total_topups = sum(float(t.amount) for t in topups)
        current_balance = float(transactions[-1].balance_after) if transactions else 0.0
        burn_rate = _burn_rate(transactions, total_spent)

        return {
            "total_spent": total_spent,
            "total_topups": total_topups,
            "current_balance": current_balance,
            "avg_transaction_size": safe_rate(total_spent, len(usage)),
            "burn_rate": burn_rate,
            "days_remaining": _days_remaining(current_balance, burn_rate),
            "total_usage_count": len(usage),
            "total_topup_count": len(topups),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _burn_rate(sorted_transactions: list[Any], total_spent: float) -> float:
    """
    Burn Rate = total_spent / days spanned by the ledger.

    Returns 0 with fewer than two transactions or a zero-length span.
    """
    if len(sorted_transactions) < 2:
        return 0.0
    span = sorted_transactions[-1].created_at - sorted_transactions[0].created_at
    return safe_rate(total_spent, span.total_seconds() / _SECONDS_PER_DAY)


def _days_remaining(current_balance: float, burn_rate: float) -> int | None:
    """None when nothing is being spent."""
    if burn_rate <= 0:
        return None
    return round(current_balance / burn_rate)


def week_over_week(transactions: Any, now: datetime) -> dict[str, Any]:
    """
    Usage spend in the last 7 days against the 7 days before that.
    """
    last_7 = 0.0
    previous_7 = 0.0
    for t in transactions:
        if t.transaction_type != USAGE:
            continue
        age = now - t.created_at
        if age <= timedelta(days=7):
            last_7 += _cost(t)
        elif age <= timedelta(days=14):
            previous_7 += _cost(t)
    change = safe_rate(last_7 - previous_7, previous_7, percent=True)
    return {
        "last_7_days_spent": last_7,
        "previous_7_days_spent": previous_7,
        "change_percent": change,
        "is_increase": change >= 0,
    }


def monthly_projection(stats: dict[str, Any], months: int = 3) -> list[dict[str, Any]]:
    """
    Project spend and balance for the next *months* at the current burn rate.
    """
    projections = []
    threshold = stats["avg_transaction_size"] * _TOPUP_BUFFER_TRANSACTIONS
    for month in range(1, months + 1):
        spend = stats["burn_rate"] * _PROJECTION_DAYS_PER_MONTH * month
        balance = max(0.0, stats["current_balance"] - spend)
        projections.append(
            {
                "month": month,
                "projected_spend": spend,
                "projected_balance": balance,
                "needs_topup": balance < threshold,
            }
        )
    return projections
