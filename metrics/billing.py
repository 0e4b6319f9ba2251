"""
metrics/billing.py

Subscription quote and invoice total formula implementations.

Expected inputs (SubscriptionQuoteFormula)
------------------------------------------
pricing_mode : str
    ``"standard"`` (one rate for every seat) or ``"role_based"``.
base_rate : Decimal
    Monthly per-seat rate for standard pricing.
role_rates : dict[str, Decimal]
    Monthly per-seat rate keyed by role for role-based pricing.
role_limits : dict[str, int]
    Seats per role (``organization_superadmin``, ``admin``, ``employee``).
billing_cycle : str
    ``"monthly"``, ``"quarterly"`` or ``"yearly"``.
tax_percentage : Decimal, optional
    Defaults to the policy's default tax percentage.

Formulas
--------
Total Users      = sum(role_limits)
Monthly Subtotal = total_users * base_rate                     (standard)
                 = sum(role_limits[r] * role_rates[r])         (role_based)
Subtotal         = monthly_subtotal * cycle_multiplier (1 / 3 / 12)
Tax              = subtotal * tax_percentage / 100
Total            = subtotal + tax

Expected inputs (InvoiceTotalsFormula)
--------------------------------------
items : list[dict]
    ``amount`` and optional ``tax_value`` / ``tax_percentage`` per line.
tds_amount : Decimal
tcs_amount : Decimal

Formulas
--------
Subtotal     = sum(item.amount)
Total Tax    = sum(item.tax_value)  (tax_value defaults to amount * rate / 100)
Adjustment   = -tds if tds > 0 else (+tcs if tcs > 0 else 0)
Grand Total  = subtotal + total_tax + adjustment
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from metrics.base import BaseMetricFormula, to_decimal
from metrics.money import MoneyPolicy

BILLING_CYCLE_MULTIPLIERS: dict[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12,
}

PRICING_MODES = ("standard", "role_based")

ROLE_ORDER = ("organization_superadmin", "admin", "employee")

_HUNDRED = Decimal("100")


class SubscriptionQuoteFormula(BaseMetricFormula):
    """
    Quote for a subscription plan over one billing cycle.
    """

    def __init__(self, policy: MoneyPolicy | None = None) -> None:
        self._policy = policy or MoneyPolicy()

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute users, subtotal, tax and total for a quote.

        Parameters
        ----------
        inputs:
            Dictionary containing the keys listed in the module docstring.

        Returns
        -------
        dict
            Keys: ``total_users``, ``multiplier``, ``monthly_subtotal``,
            ``subtotal``, ``tax_percentage``, ``tax_amount``, ``total``,
            ``line_items``.

        Raises
        ------
        ValueError
            If the pricing mode or billing cycle is unknown.
        """
        pricing_mode: str = inputs["pricing_mode"]
        billing_cycle: str = inputs["billing_cycle"]
        limits: dict[str, int] = {role: int(inputs["role_limits"].get(role) or 0) for role in ROLE_ORDER}
        tax_percentage = to_decimal(
            inputs.get("tax_percentage", self._policy.default_tax_percentage)
        )

        if pricing_mode not in PRICING_MODES:
            raise ValueError(f"Unknown pricing_mode {pricing_mode!r}; expected one of {PRICING_MODES}")
        multiplier = _cycle_multiplier(billing_cycle)
        total_users = sum(limits.values())

        if pricing_mode == "standard":
            base_rate = to_decimal(inputs.get("base_rate"))
            monthly_subtotal = base_rate * total_users
            line_items = [
                {
                    "description": "Standard seats",
                    "quantity": total_users,
                    "rate": self._policy.quantize(base_rate * multiplier),
                    "amount": self._policy.quantize(monthly_subtotal * multiplier),
                }
            ]
        else:
            rates = {role: to_decimal(inputs.get("role_rates", {}).get(role)) for role in ROLE_ORDER}
            monthly_subtotal = sum(
                (rates[role] * limits[role] for role in ROLE_ORDER),
                Decimal("0"),
            )
            line_items = [
                {
                    "description": role,
                    "quantity": limits[role],
                    "rate": self._policy.quantize(rates[role] * multiplier),
                    "amount": self._policy.quantize(rates[role] * limits[role] * multiplier),
                }
                for role in ROLE_ORDER
                if limits[role] > 0
            ]

        subtotal = monthly_subtotal * multiplier
        tax_amount = _tax(subtotal, tax_percentage)
        total = subtotal + tax_amount

        q = self._policy.quantize
        return {
            "total_users": total_users,
            "multiplier": multiplier,
            "monthly_subtotal": q(monthly_subtotal),
            "subtotal": q(subtotal),
            "tax_percentage": tax_percentage,
            "tax_amount": q(tax_amount),
            "total": self._policy.finalize_total(total),
            "line_items": line_items,
        }


class InvoiceTotalsFormula(BaseMetricFormula):
    """
    Invoice summary with tax breakdown and TDS / TCS adjustment.
    """

    def __init__(self, policy: MoneyPolicy | None = None) -> None:
        self._policy = policy or MoneyPolicy()

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute subtotal, tax, breakdown by rate, adjustment and grand total.

        Parameters
        ----------
        inputs:
            Dictionary containing the keys listed in the module docstring.

        Returns
        -------
        dict
            Keys: ``subtotal``, ``total_tax``, ``tax_breakdown`` (rate as
            string -> amount), ``adjustment``, ``grand_total``.
        """
        items: list[dict[str, Any]] = inputs.get("items") or []
        tds = to_decimal(inputs.get("tds_amount"))
        tcs = to_decimal(inputs.get("tcs_amount"))

        subtotal = Decimal("0")
        total_tax = Decimal("0")
        breakdown: dict[str, Decimal] = {}
        for item in items:
            amount = to_decimal(item.get("amount"))
            rate = item.get("tax_percentage")
            rate = self._policy.default_tax_percentage if rate is None else to_decimal(rate)
            tax_value = item.get("tax_value")
            tax_value = _tax(amount, rate) if tax_value is None else to_decimal(tax_value)

            subtotal += amount
            total_tax += tax_value
            rate_key = _rate_label(rate)
            breakdown[rate_key] = breakdown.get(rate_key, Decimal("0")) + tax_value

        adjustment = _adjustment(tds, tcs, tds_first=self._policy.tds_takes_precedence)
        grand_total = subtotal + total_tax + adjustment

        q = self._policy.quantize
        return {
            "subtotal": q(subtotal),
            "total_tax": q(total_tax),
            "tax_breakdown": {rate: q(amount) for rate, amount in breakdown.items()},
            "adjustment": q(adjustment),
            "grand_total": self._policy.finalize_total(grand_total),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _cycle_multiplier(billing_cycle: str) -> int:
    try:
        return BILLING_CYCLE_MULTIPLIERS[billing_cycle]
    except KeyError:
        raise ValueError(
            f"Unknown billing_cycle {billing_cycle!r}; "
            f"expected one of {sorted(BILLING_CYCLE_MULTIPLIERS)}"
        ) from None


def _tax(amount: Decimal, percentage: Decimal) -> Decimal:
    """Tax = amount * percentage / 100."""
    return amount * percentage / _HUNDRED


def _adjustment(tds: Decimal, tcs: Decimal, *, tds_first: bool) -> Decimal:
    """
    Adjustment = -tds when tds > 0, else +tcs when tcs > 0, else 0.

    With ``tds_first=False`` both apply: ``tcs - tds`` (each only if positive).
    """
    tds = tds if tds > 0 else Decimal("0")
    tcs = tcs if tcs > 0 else Decimal("0")
    if tds_first:
        return -tds if tds > 0 else tcs
    return tcs - tds


def _rate_label(rate: Decimal) -> str:
    """18 -> "18", 12.5 -> "12.5"."""
    normalized = rate.normalize()
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")
