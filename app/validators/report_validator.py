"""
app/validators/report_validator.py

Input preconditions for report queries and the payroll / billing
calculators.

Every check runs before any database call and raises
:class:`~app.errors.ReportValidationError` naming the offending field.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from app.config import ReportSettings, get_report_settings
from app.domain.report import ReportQuery
from app.errors import ReportValidationError
from metrics.billing import BILLING_CYCLE_MULTIPLIERS, PRICING_MODES, ROLE_ORDER

GRANULARITIES = ("day", "week", "month")


def _clean_names(values: Iterable[str] | None) -> tuple[str, ...]:
    cleaned: list[str] = []
    for value in values or ():
        text = value.strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return tuple(cleaned)


def resolve_date_range(
    date_from: date | None,
    date_to: date | None,
    *,
    today: date | None = None,
    settings: ReportSettings | None = None,
) -> tuple[datetime, datetime]:
    """
    Turn optional calendar dates into an inclusive UTC datetime window.

    A missing end defaults to *today*; a missing start defaults to
    ``default_lookback_days`` before the end.

    Raises
    ------
    ReportValidationError
        If the end date is before the start date.
    """
    settings = settings or get_report_settings()
    end_day = date_to or today or datetime.now(tz=timezone.utc).date()
    start_day = date_from or (end_day - timedelta(days=settings.default_lookback_days))

    if end_day < start_day:
        raise ReportValidationError(
            f"date_to ({end_day.isoformat()}) must not be before date_from ({start_day.isoformat()})",
            field="date_to",
        )

    start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
    return start, end


def validate_organization_id(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError as exc:
        raise ReportValidationError(
            f"organization_id must be a UUID; got {value!r}",
            field="organization_id",
        ) from exc


def build_report_query(
    report_key: str,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    organization_id: str | None = None,
    team_members: Sequence[str] | None = None,
    statuses: Sequence[str] | None = None,
    granularity: str = "day",
    today: date | None = None,
    settings: ReportSettings | None = None,
) -> ReportQuery:
    """
    Validate raw query parameters and build a :class:`ReportQuery`.

    Raises
    ------
    ReportValidationError
        On an inverted date range, a malformed organization id or an
        unknown granularity.
    """
    if granularity not in GRANULARITIES:
        raise ReportValidationError(
            f"granularity must be one of {list(GRANULARITIES)}; got {granularity!r}",
            field="granularity",
        )
    start, end = resolve_date_range(date_from, date_to, today=today, settings=settings)
    return ReportQuery(
        report_key=report_key,
        date_from=start,
        date_to=end,
        organization_id=validate_organization_id(organization_id),
        team_members=_clean_names(team_members),
        statuses=_clean_names(statuses),
        granularity=granularity,  # type: ignore[arg-type]
    )


def validate_recipients(recipients: Sequence[str]) -> list[str]:
    cleaned = list(_clean_names(recipients))
    if not cleaned:
        raise ReportValidationError("At least one recipient is required", field="recipients")
    invalid = [address for address in cleaned if "@" not in address]
    if invalid:
        raise ReportValidationError(f"Invalid recipient address(es): {invalid}", field="recipients")
    return cleaned


# ---------------------------------------------------------------------------
# Calculator inputs
# ---------------------------------------------------------------------------


def _decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ReportValidationError(f"{field} must be a number; got {value!r}", field=field) from exc


def _require_non_negative_amounts(amounts: Mapping[str, Any], field: str) -> None:
    for name, value in amounts.items():
        if _decimal(value, f"{field}.{name}") < 0:
            raise ReportValidationError(f"{field}.{name} must not be negative", field=f"{field}.{name}")


def validate_lop_inputs(
    *,
    standard_earnings: Mapping[str, Any],
    custom_earnings: Mapping[str, Any],
    deductions: Mapping[str, Any],
    paid_days: int,
    lop_days: int,
) -> None:
    """
    Raises
    ------
    ReportValidationError
        On negative days, LOP days exceeding paid days, negative amounts
        or a non-positive standard total.
    """
    if paid_days < 0:
        raise ReportValidationError("paid_days must not be negative", field="paid_days")
    if lop_days < 0:
        raise ReportValidationError("lop_days must not be negative", field="lop_days")
    if lop_days > paid_days:
        raise ReportValidationError("lop_days cannot exceed paid_days", field="lop_days")
    if not standard_earnings:
        raise ReportValidationError("standard_earnings must not be empty", field="standard_earnings")

    _require_non_negative_amounts(standard_earnings, "standard_earnings")
    _require_non_negative_amounts(custom_earnings, "custom_earnings")
    _require_non_negative_amounts(deductions, "deductions")

    total = sum((_decimal(v, "standard_earnings") for v in standard_earnings.values()), Decimal("0"))
    if total <= 0:
        raise ReportValidationError("standard earnings total must be positive", field="standard_earnings")


def validate_per_day_inputs(*, monthly_total: Any, days_in_period: int) -> None:
    if _decimal(monthly_total, "monthly_total") <= 0:
        raise ReportValidationError("monthly_total must be positive", field="monthly_total")
    if days_in_period < 0:
        raise ReportValidationError("days_in_period must not be negative", field="days_in_period")


def validate_subscription_inputs(
    *,
    pricing_mode: str,
    billing_cycle: str,
    base_rate: Any,
    role_rates: Mapping[str, Any],
    role_limits: Mapping[str, int],
) -> None:
    """
    Raises
    ------
    ReportValidationError
        On an unknown pricing mode, billing cycle or role, negative seats, no
        seats at all, or a non-positive rate for the chosen mode.
    """
    if pricing_mode not in PRICING_MODES:
        raise ReportValidationError(
            f"pricing_mode must be one of {list(PRICING_MODES)}; got {pricing_mode!r}",
            field="pricing_mode",
        )
    if billing_cycle not in BILLING_CYCLE_MULTIPLIERS:
        raise ReportValidationError(
            f"billing_cycle must be one of {list(BILLING_CYCLE_MULTIPLIERS)}; got {billing_cycle!r}",
            field="billing_cycle",
        )
    for role in role_limits:
        if role not in ROLE_ORDER:
            raise ReportValidationError(
                f"unknown role {role!r}; expected one of {list(ROLE_ORDER)}",
                field=f"role_limits.{role}",
            )
    if any(int(limit) < 0 for limit in role_limits.values()):
        raise ReportValidationError("role_limits must not be negative", field="role_limits")
    if sum(int(limit) for limit in role_limits.values()) <= 0:
        raise ReportValidationError("at least one seat is required", field="role_limits")

    if pricing_mode == "standard":
        if base_rate is None or _decimal(base_rate, "base_rate") <= 0:
            raise ReportValidationError("base_rate must be positive for standard pricing", field="base_rate")
        return

    for role, limit in role_limits.items():
        if int(limit) > 0 and _decimal(role_rates.get(role, 0), f"role_rates.{role}") <= 0:
            raise ReportValidationError(
                f"role_rates.{role} must be positive when seats are requested",
                field=f"role_rates.{role}",
            )


def validate_invoice_inputs(*, items: Sequence[Mapping[str, Any]], tds_amount: Any, tcs_amount: Any) -> None:
    if not items:
        raise ReportValidationError("an invoice needs at least one item", field="items")
    for index, item in enumerate(items):
        if _decimal(item.get("amount"), f"items[{index}].amount") <= 0:
            raise ReportValidationError(
                f"items[{index}].amount must be positive",
                field=f"items[{index}].amount",
            )
    if _decimal(tds_amount or 0, "tds_amount") < 0:
        raise ReportValidationError("tds_amount must not be negative", field="tds_amount")
    if _decimal(tcs_amount or 0, "tcs_amount") < 0:
        raise ReportValidationError("tcs_amount must not be negative", field="tcs_amount")
