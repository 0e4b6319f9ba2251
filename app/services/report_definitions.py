"""
app/services/report_definitions.py

Registry of report definitions.

Each definition names the record family it reads, the auxiliary lookups it
needs, and a pure ``build`` function that wires the grouping reducer, the
metric formulas and the shape spec together:

    client_wise             recruitment  client x main status
    recruiter_performance   recruitment  recruiter funnel + rates
    individual              recruitment  recruiter x latest "<main> - <sub>"
    sales_pipeline          sales        stage overview
    sales_performance       sales        owner won / lost / revenue / target
    verification_usage      credits      usage per verification type
    verification_sources    credits      usage per source
    verification_timeseries credits      usage / top-up / balance per period

``build`` never performs I/O; the orchestrator fetches first and caches the
build output on its inputs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.domain.records import FetchResult
from app.domain.report import Accumulator, ColumnSpec, Granularity
from app.services.grouping_service import (
    UNCATEGORIZED_LABEL,
    GroupingReducer,
    latest_per_entity,
    time_bucket,
)
from app.services.row_fetcher import UNASSIGNED_LABEL
from app.services.shaping_service import ShapeAdapter, ShapeSpec
from metrics.recruitment import (
    MAIN_STATUS_ORDER,
    RECRUITER_COUNTERS,
    ClientStatusFormula,
    IndividualStatusFormula,
    RecruiterPerformanceFormula,
    include_in_client_report,
    is_profile_submission,
    recruiter_counter,
    status_catalogue_labels,
)
from metrics.sales import (
    PIPELINE_STAGE_ORDER,
    STATUS_LOST,
    STATUS_WON,
    SalesPerformanceFormula,
    SalesPipelineFormula,
    conversion_rate,
)
from metrics.verification import (
    VerificationStatsFormula,
    VerificationUsageFormula,
    monthly_projection,
    week_over_week,
)

FAMILY_STATUS_CHANGES = "status_changes"
FAMILY_DEALS = "deals"
FAMILY_CREDIT_TRANSACTIONS = "credit_transactions"

EXTRA_STATUS_CATALOGUE = "status_catalogue"
EXTRA_JOBS_ASSIGNED = "jobs_assigned"
EXTRA_SALES_TARGETS = "sales_targets"

_reducer = GroupingReducer()
_shaper = ShapeAdapter()

_client_formula = ClientStatusFormula()
_recruiter_formula = RecruiterPerformanceFormula()
_individual_formula = IndividualStatusFormula()
_pipeline_formula = SalesPipelineFormula()
_performance_formula = SalesPerformanceFormula()
_usage_formula = VerificationUsageFormula()
_stats_formula = VerificationStatsFormula()

_SECONDS_PER_DAY = 86_400.0


@dataclass(frozen=True)
class BuildContext:
    """
    Invocation parameters that affect the build output.

    ``reference`` is the instant used for relative windows (week over week);
    it is derived from the query so the build stays pure.
    """

    granularity: Granularity = "day"
    reference: datetime | None = None
    team_members: tuple[str, ...] = ()


@dataclass(frozen=True)
class BuildOutput:
    columns: tuple[ColumnSpec, ...]
    rows: tuple[Any, ...]
    summary: tuple[tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class ReportDefinition:
    """
    Attributes
    ----------
    key:
        Registry key used in URLs.
    title:
        Display title.
    family:
        Record family the fetcher loads.
    build:
        Pure function from fetched data to columns, rows and summary.
    extras:
        Auxiliary lookups fetched alongside the records.
    """

    key: str
    title: str
    family: str
    build: Callable[[FetchResult, BuildContext], BuildOutput]
    extras: tuple[str, ...] = ()


def _shape(groups: Mapping[str, Accumulator], spec: ShapeSpec) -> tuple[Any, ...]:
    return _shaper.shape(groups, spec)


def _distinct_entities(acc: Accumulator) -> float:
    return acc.distinct_entities


# ---------------------------------------------------------------------------
# Recruitment
# ---------------------------------------------------------------------------


def build_client_wise(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    groups = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: r.client_name,
        exclude=lambda r: not include_in_client_report(r.main_status, r.sub_status),
        entity_fn=lambda r: r.candidate_id,
        category_fn=lambda r: r.main_status,
        weight_fn=lambda r: r.count,
        timestamp_fn=lambda r: r.created_at,
    )
    spec = ShapeSpec(
        categories=MAIN_STATUS_ORDER,
        metrics_fn=lambda acc: _client_formula.calculate(
            {"total_candidates": acc.distinct_entities, "status_counts": acc.category_counts}
        ),
        total_fn=_distinct_entities,
    )
    columns = (
        ColumnSpec("Client", "label"),
        ColumnSpec("Total Candidates", "total"),
    ) + tuple(ColumnSpec(status, f"category:{status}") for status in MAIN_STATUS_ORDER)
    return BuildOutput(columns=columns, rows=_shape(groups, spec))


_RECRUITER_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("Recruiter", "label"),
    ColumnSpec("Jobs Assigned", "metric:jobs_assigned"),
    ColumnSpec("Profiles Submitted", "metric:profiles_submitted"),
    ColumnSpec("Internal Reject", "metric:internal_reject"),
    ColumnSpec("Internal Hold", "metric:internal_hold"),
    ColumnSpec("Sent to Client", "metric:sent_to_client"),
    ColumnSpec("Client Reject", "metric:client_reject"),
    ColumnSpec("Client Hold", "metric:client_hold"),
    ColumnSpec("Client Duplicate", "metric:client_duplicate"),
    ColumnSpec("Technical", "metric:technical"),
    ColumnSpec("Technical Selected", "metric:technical_selected"),
    ColumnSpec("Technical Reject", "metric:technical_reject"),
    ColumnSpec("L1", "metric:l1"),
    ColumnSpec("L1 Selected", "metric:l1_selected"),
    ColumnSpec("L1 Reject", "metric:l1_reject"),
    ColumnSpec("L2", "metric:l2"),
    ColumnSpec("L2 Reject", "metric:l2_reject"),
    ColumnSpec("End Client", "metric:end_client"),
    ColumnSpec("End Client Reject", "metric:end_client_reject"),
    ColumnSpec("Offers Made", "metric:offers_made"),
    ColumnSpec("Offers Accepted", "metric:offers_accepted"),
    ColumnSpec("Offers Rejected", "metric:offers_rejected"),
    ColumnSpec("Joined", "metric:joined"),
    ColumnSpec("No Show", "metric:no_show"),
    ColumnSpec("Submission to Client %", "metric:submission_to_client_rate"),
    ColumnSpec("Interview to Offer %", "metric:interview_to_offer_rate"),
    ColumnSpec("Offer to Join %", "metric:offer_to_join_rate"),
)


def build_recruiter_performance(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    """
    Two passes over the same records:

    - status counters per recruiter, weighted by change ``count``;
    - profile submissions, deduplicated by candidate so a candidate is
      credited to the first recruiter who submitted it and never twice.
    """
    jobs_assigned: dict[str, int] = dict(fetched.extra(EXTRA_JOBS_ASSIGNED, ()))
    seeds = [name for name in jobs_assigned if name != UNASSIGNED_LABEL]
    if context.team_members:
        allowed = set(context.team_members)
        seeds = [name for name in seeds if name in allowed]

    counters = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: r.recruiter_name,
        category_fn=lambda r: recruiter_counter(r.main_status, r.sub_status),
        weight_fn=lambda r: r.count,
        entity_fn=lambda r: r.candidate_id,
        timestamp_fn=lambda r: r.created_at,
        seed_keys=seeds,
    )
    submissions = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: r.recruiter_name,
        exclude=lambda r: not is_profile_submission(r.main_status, r.sub_status),
        dedup_key=lambda r: r.candidate_id,
    )

    def profiles_submitted(key: str) -> int:
        acc = submissions.get(key)
        return acc.distinct_entities if acc is not None else 0

    spec = ShapeSpec(
        categories=RECRUITER_COUNTERS,
        metrics_fn=lambda acc: _recruiter_formula.calculate(
            {
                "counters": acc.category_counts,
                "profiles_submitted": profiles_submitted(acc.key),
                "jobs_assigned": jobs_assigned.get(acc.key, 0),
            }
        ),
        total_fn=lambda acc: profiles_submitted(acc.key),
    )
    rows = _shape(counters, spec)

    funnel: dict[str, float] = {"profiles_submitted": sum(row.total for row in rows)}
    for name in RECRUITER_COUNTERS:
        funnel[name] = sum(row.category(name) for row in rows)
    totals = _recruiter_formula.calculate(
        {
            "counters": funnel,
            "profiles_submitted": funnel["profiles_submitted"],
            "jobs_assigned": sum(jobs_assigned.get(row.label, 0) for row in rows),
        }
    )
    return BuildOutput(columns=_RECRUITER_COLUMNS, rows=rows, summary=(("funnel", totals),))


def build_individual(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    latest = latest_per_entity(
        fetched.records,
        entity_fn=lambda r: r.candidate_id,
        ts_fn=lambda r: r.effective_at,
    )
    groups = _reducer.reduce(
        latest,
        key_fn=lambda r: r.recruiter_name,
        entity_fn=lambda r: r.candidate_id,
        category_fn=lambda r: r.status_label,
        weight_fn=lambda r: r.count,
        bucket_fn=lambda r: time_bucket(r.effective_at, context.granularity),
        timestamp_fn=lambda r: r.effective_at,
    )
    observed = {category for acc in groups.values() for category in acc.category_counts}
    catalogue = status_catalogue_labels(fetched.extra(EXTRA_STATUS_CATALOGUE, ()))
    categories = tuple(sorted(set(catalogue) | observed))

    spec = ShapeSpec(
        categories=categories,
        metrics_fn=lambda acc: _individual_formula.calculate(
            {"total_candidates": acc.distinct_entities, "status_counts": acc.category_counts}
        ),
        total_fn=_distinct_entities,
    )
    columns = (
        ColumnSpec("Recruiter", "label"),
        ColumnSpec("Total Candidates", "total"),
    ) + tuple(ColumnSpec(label, f"category:{label}") for label in categories)
    return BuildOutput(columns=columns, rows=_shape(groups, spec))


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def _is_won(record: Any) -> bool:
    return record.status == STATUS_WON


def _cycle_days(record: Any) -> float:
    if not _is_won(record) or record.closed_at is None:
        return 0.0
    return (record.closed_at - record.created_at).total_seconds() / _SECONDS_PER_DAY


def build_sales_pipeline(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    groups = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: r.stage,
        entity_fn=lambda r: r.deal_id,
        value_fn=lambda r: float(r.deal_value),
        counter_fns={"won": lambda r: 1 if _is_won(r) else 0},
        timestamp_fn=lambda r: r.created_at,
    )
    spec = ShapeSpec(
        row_order=PIPELINE_STAGE_ORDER,
        metrics_fn=lambda acc: _pipeline_formula.calculate(
            {"count": acc.record_count, "total_value": acc.total}
        ),
    )
    rows = _shape(groups, spec)

    total_deals = sum(acc.record_count for acc in groups.values())
    won = int(sum(acc.counters.get("won", 0) for acc in groups.values()))
    summary = (
        ("total_deals", total_deals),
        ("won_deals", won),
        ("pipeline_value", sum(acc.total for acc in groups.values())),
        ("conversion_rate", conversion_rate(won, total_deals)),
    )
    columns = (
        ColumnSpec("Stage", "label"),
        ColumnSpec("Deals", "metric:count"),
        ColumnSpec("Total Value", "metric:total_value"),
        ColumnSpec("Average Deal Size", "metric:average_deal_size"),
    )
    return BuildOutput(columns=columns, rows=rows, summary=summary)


def build_sales_performance(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    targets = fetched.extra(EXTRA_SALES_TARGETS, ())
    if context.team_members:
        # Owner-less team targets cannot be split across a filtered subset.
        allowed = set(context.team_members)
        targets = tuple((owner, amount) for owner, amount in targets if owner in allowed)
    owner_targets = {owner: amount for owner, amount in targets if owner is not None}
    team_target = sum(amount for _, amount in targets)

    counter_fns = {
        "won": lambda r: 1 if _is_won(r) else 0,
        "lost": lambda r: 1 if r.status == STATUS_LOST else 0,
        "cycle_days_total": _cycle_days,
        "cycle_count": lambda r: 1 if _is_won(r) and r.closed_at is not None else 0,
    }
    groups = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: r.owner_name,
        entity_fn=lambda r: r.deal_id,
        value_fn=lambda r: float(r.deal_value) if _is_won(r) else 0.0,
        counter_fns=counter_fns,
        timestamp_fn=lambda r: r.created_at,
    )

    def _inputs(counters: Mapping[str, float], revenue: float, target: float) -> dict[str, Any]:
        return {
            "won_deals": counters.get("won", 0),
            "lost_deals": counters.get("lost", 0),
            "total_revenue": revenue,
            "cycle_days_total": counters.get("cycle_days_total", 0.0),
            "cycle_count": counters.get("cycle_count", 0),
            "target_revenue": target,
        }

    spec = ShapeSpec(
        sort_by_metric="total_revenue",
        metrics_fn=lambda acc: {
            "deals": acc.record_count,
            **_performance_formula.calculate(
                _inputs(acc.counters, acc.total, owner_targets.get(acc.key, 0.0))
            ),
        },
    )
    rows = _shape(groups, spec)

    team_counters: dict[str, float] = {}
    for acc in groups.values():
        for name, value in acc.counters.items():
            team_counters[name] = team_counters.get(name, 0) + value
    team = _performance_formula.calculate(
        _inputs(team_counters, sum(acc.total for acc in groups.values()), team_target)
    )
    columns = (
        ColumnSpec("Owner", "label"),
        ColumnSpec("Deals", "metric:deals"),
        ColumnSpec("Won", "metric:won_deals"),
        ColumnSpec("Lost", "metric:lost_deals"),
        ColumnSpec("Revenue", "metric:total_revenue"),
        ColumnSpec("Win Rate %", "metric:win_rate"),
        ColumnSpec("Average Deal Size", "metric:average_deal_size"),
        ColumnSpec("Average Cycle Days", "metric:average_sales_cycle_days"),
        ColumnSpec("Target", "metric:target_revenue"),
        ColumnSpec("Achievement %", "metric:achievement_percentage"),
    )
    return BuildOutput(columns=columns, rows=rows, summary=(("team", team),))


# ---------------------------------------------------------------------------
# Verification credits
# ---------------------------------------------------------------------------


def _verification_summary(fetched: FetchResult, context: BuildContext) -> tuple[tuple[str, Any], ...]:
    stats = _stats_formula.calculate({"transactions": fetched.records})
    summary: list[tuple[str, Any]] = [
        ("stats", stats),
        ("projections", monthly_projection(stats)),
    ]
    if context.reference is not None:
        summary.append(("week_over_week", week_over_week(fetched.records, context.reference)))
    return tuple(summary)


def _usage_builder(label: str, key_fn: Callable[[Any], Any]) -> Callable[[FetchResult, BuildContext], BuildOutput]:
    def build(fetched: FetchResult, context: BuildContext) -> BuildOutput:
        groups = _reducer.reduce(
            fetched.records,
            key_fn=key_fn,
            exclude=lambda r: not r.is_usage,
            unknown_label=UNCATEGORIZED_LABEL,
            entity_fn=lambda r: r.transaction_id,
            value_fn=lambda r: float(r.cost),
            timestamp_fn=lambda r: r.created_at,
        )
        spec = ShapeSpec(
            sort_by_metric="total_cost",
            metrics_fn=lambda acc: _usage_formula.calculate(
                {"count": acc.record_count, "total_cost": acc.total}
            ),
        )
        columns = (
            ColumnSpec(label, "label"),
            ColumnSpec("Count", "metric:count"),
            ColumnSpec("Total Cost", "metric:total_cost"),
            ColumnSpec("Average Cost", "metric:avg_cost"),
        )
        return BuildOutput(
            columns=columns,
            rows=_shape(groups, spec),
            summary=_verification_summary(fetched, context),
        )

    return build


def build_verification_timeseries(fetched: FetchResult, context: BuildContext) -> BuildOutput:
    groups = _reducer.reduce(
        fetched.records,
        key_fn=lambda r: time_bucket(r.created_at, context.granularity),
        entity_fn=lambda r: r.transaction_id,
        value_fn=lambda r: float(r.balance_after),
        counter_fns={
            "usage": lambda r: float(r.cost) if r.is_usage else 0.0,
            "topup": lambda r: 0.0 if r.is_usage else float(r.amount),
        },
        timestamp_fn=lambda r: r.created_at,
    )
    spec = ShapeSpec(
        metrics_fn=lambda acc: {
            "usage": acc.counters.get("usage", 0.0),
            "topup": acc.counters.get("topup", 0.0),
            "balance": acc.last_value,
            "transactions": acc.record_count,
        },
        total_fn=lambda acc: acc.counters.get("usage", 0.0),
    )
    columns = (
        ColumnSpec("Period", "label"),
        ColumnSpec("Usage", "metric:usage"),
        ColumnSpec("Top-ups", "metric:topup"),
        ColumnSpec("Closing Balance", "metric:balance"),
        ColumnSpec("Transactions", "metric:transactions"),
    )
    return BuildOutput(
        columns=columns,
        rows=_shape(groups, spec),
        summary=_verification_summary(fetched, context),
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


REPORT_DEFINITIONS: dict[str, ReportDefinition] = {
    definition.key: definition
    for definition in (
        ReportDefinition(
            key="client_wise",
            title="Client-wise Candidate Status Report",
            family=FAMILY_STATUS_CHANGES,
            build=build_client_wise,
        ),
        ReportDefinition(
            key="recruiter_performance",
            title="Recruiter Performance Report",
            family=FAMILY_STATUS_CHANGES,
            build=build_recruiter_performance,
            extras=(EXTRA_JOBS_ASSIGNED,),
        ),
        ReportDefinition(
            key="individual",
            title="Individual Recruiter Status Report",
            family=FAMILY_STATUS_CHANGES,
            build=build_individual,
            extras=(EXTRA_STATUS_CATALOGUE,),
        ),
        ReportDefinition(
            key="sales_pipeline",
            title="Sales Pipeline Overview",
            family=FAMILY_DEALS,
            build=build_sales_pipeline,
        ),
        ReportDefinition(
            key="sales_performance",
            title="Sales Performance by Owner",
            family=FAMILY_DEALS,
            build=build_sales_performance,
            extras=(EXTRA_SALES_TARGETS,),
        ),
        ReportDefinition(
            key="verification_usage",
            title="Verification Usage by Type",
            family=FAMILY_CREDIT_TRANSACTIONS,
            build=_usage_builder("Verification Type", lambda r: r.verification_type),
        ),
        ReportDefinition(
            key="verification_sources",
            title="Verification Usage by Source",
            family=FAMILY_CREDIT_TRANSACTIONS,
            build=_usage_builder("Source", lambda r: r.source),
        ),
        ReportDefinition(
            key="verification_timeseries",
            title="Verification Credits Over Time",
            family=FAMILY_CREDIT_TRANSACTIONS,
            build=build_verification_timeseries,
        ),
    )
}
