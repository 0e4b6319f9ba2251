"""
app/validators package marker.
"""

from app.validators.report_validator import (
    GRANULARITIES,
    build_report_query,
    resolve_date_range,
    validate_invoice_inputs,
    validate_lop_inputs,
    validate_organization_id,
    validate_per_day_inputs,
    validate_recipients,
    validate_subscription_inputs,
)

__all__ = [
    "GRANULARITIES",
    "build_report_query",
    "resolve_date_range",
    "validate_invoice_inputs",
    "validate_lop_inputs",
    "validate_organization_id",
    "validate_per_day_inputs",
    "validate_recipients",
    "validate_subscription_inputs",
]
