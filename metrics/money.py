"""
metrics/money.py

Rounding and sign policy for monetary formulas.

The exact rounding direction and the handling of negative totals are
business decisions, so they are configuration rather than constants.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from metrics.base import to_decimal


@dataclass(frozen=True)
class MoneyPolicy:
    """
    Attributes
    ----------
    decimal_places:
        Places kept when quantising output amounts.
    rounding:
        One of the ``decimal`` module rounding constants.
    default_tax_percentage:
        Tax rate used when an invoice line or a quote does not carry one.
    clamp_negative_total:
        When true a negative grand total is reported as zero.
    tds_takes_precedence:
        When true and both TDS and TCS are present only TDS is applied;
        otherwise both are applied (``tcs - tds``).
    """

    decimal_places: int = 2
    rounding: str = ROUND_HALF_UP
    default_tax_percentage: Decimal = Decimal("18")
    clamp_negative_total: bool = False
    tds_takes_precedence: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> MoneyPolicy:
        return cls(
            decimal_places=settings.decimal_places,
            rounding=settings.rounding,
            default_tax_percentage=to_decimal(settings.default_tax_percentage),
            clamp_negative_total=settings.clamp_negative_total,
            tds_takes_precedence=settings.tds_takes_precedence,
        )

    @property
    def _exponent(self) -> Decimal:
        return Decimal(1).scaleb(-self.decimal_places)

    def quantize(self, value: Any) -> Decimal:
        """Round *value* to the configured places with the configured mode."""
        return to_decimal(value).quantize(self._exponent, rounding=self.rounding)

    def finalize_total(self, value: Any) -> Decimal:
        """Quantise a grand total, clamping at zero when configured."""
        amount = to_decimal(value)
        if self.clamp_negative_total and amount < 0:
            amount = Decimal("0")
        return self.quantize(amount)
