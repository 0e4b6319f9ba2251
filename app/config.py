"""
app/config.py

Application-level configuration helpers.

Every settings object is a frozen dataclass built once from environment
variables and cached; services receive it explicitly instead of reading
the environment themselves.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP
from functools import lru_cache

from db.config import load_env_files

_ROUNDING_MODES = {
    "ROUND_HALF_UP": ROUND_HALF_UP,
    "ROUND_HALF_EVEN": ROUND_HALF_EVEN,
    "ROUND_DOWN": ROUND_DOWN,
    "ROUND_UP": ROUND_UP,
}

_PDF_PAGE_SIZES = {"A4", "LETTER"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ReportSettings:
    """
    Runtime settings for report fetching.
    """

    fetch_timeout_seconds: float = 30.0
    max_rows: int = 100_000
    default_lookback_days: int = 30


@dataclass(frozen=True)
class ExportSettings:
    """
    CSV and PDF rendering settings.
    """

    pdf_page_size: str = "A4"
    pdf_landscape: bool = True
    csv_filename_suffix: str = "report"


@dataclass(frozen=True)
class NotificationSettings:
    """
    Outbound email collaborator settings.
    """

    enabled: bool = False
    endpoint_url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class MoneySettings:
    """
    Rounding and sign policy for payroll and billing arithmetic.
    """

    decimal_places: int = 2
    rounding: str = ROUND_HALF_UP
    default_tax_percentage: float = 18.0
    clamp_negative_total: bool = False
    tds_takes_precedence: bool = True


@lru_cache(maxsize=1)
def get_report_settings() -> ReportSettings:
    """
    Return cached report settings from environment variables.
    """

    return ReportSettings(
        fetch_timeout_seconds=max(1.0, _get_float_env("REPORT_FETCH_TIMEOUT_SECONDS", 30.0)),
        max_rows=max(1, _get_int_env("REPORT_MAX_ROWS", 100_000)),
        default_lookback_days=max(1, _get_int_env("REPORT_DEFAULT_LOOKBACK_DAYS", 30)),
    )


@lru_cache(maxsize=1)
def get_export_settings() -> ExportSettings:
    """
    Return cached export settings from environment variables.

    Unknown page sizes fall back to A4.
    """

    page_size = _get_str_env("EXPORT_PDF_PAGE_SIZE", "A4").upper()
    if page_size not in _PDF_PAGE_SIZES:
        page_size = "A4"
    return ExportSettings(
        pdf_page_size=page_size,
        pdf_landscape=_get_bool_env("EXPORT_PDF_LANDSCAPE", True),
        csv_filename_suffix=_get_str_env("EXPORT_CSV_FILENAME_SUFFIX", "report"),
    )


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """
    Return cached outbound email settings from environment variables.
    """

    return NotificationSettings(
        enabled=_get_bool_env("REPORT_EMAIL_ENABLED", False),
        endpoint_url=_get_optional_str_env("REPORT_EMAIL_ENDPOINT"),
        api_key=_get_optional_str_env("REPORT_EMAIL_API_KEY"),
        timeout_seconds=max(1.0, _get_float_env("REPORT_EMAIL_TIMEOUT_SECONDS", 15.0)),
    )


@lru_cache(maxsize=1)
def get_money_settings() -> MoneySettings:
    """
    Return cached money policy settings.

    ``MONEY_ROUNDING`` accepts the ``decimal`` module constant names; unknown
    values fall back to ``ROUND_HALF_UP``.
    """

    rounding_name = _get_str_env("MONEY_ROUNDING", "ROUND_HALF_UP").upper()
    return MoneySettings(
        decimal_places=max(0, _get_int_env("MONEY_DECIMAL_PLACES", 2)),
        rounding=_ROUNDING_MODES.get(rounding_name, ROUND_HALF_UP),
        default_tax_percentage=max(0.0, _get_float_env("MONEY_DEFAULT_TAX_PERCENTAGE", 18.0)),
        clamp_negative_total=_get_bool_env("MONEY_CLAMP_NEGATIVE_TOTAL", False),
        tds_takes_precedence=_get_bool_env("MONEY_TDS_TAKES_PRECEDENCE", True),
    )
