"""
metrics/recruitment.py

Recruitment pipeline formulas: client-wise status breakdown, recruiter
performance and the individual (per recruiter, latest status) report.

Status vocabulary
-----------------
Main statuses shown in reports, in display order:

    Processed, Interview, Offered, Joined

The ``Candidate on hold`` sub-status never counts towards the client-wise
breakdown, and ``Processed`` only counts for the client-facing sub-statuses
listed in :data:`PROCESSED_CLIENT_SUB_STATUSES`.

Expected inputs (RecruiterPerformanceFormula)
---------------------------------------------
counters : dict[str, float]
    Sum of change ``count`` per counter name from
    :data:`RECRUITER_COUNTERS`.
profiles_submitted : int
    Distinct candidates first submitted by this recruiter.
jobs_assigned : int
    Requisitions assigned to this recruiter in the period.

Formulas
--------
Submission To Client Rate = sent_to_client / profiles_submitted * 100
Interview To Offer Rate   = offers_made / interviews_total * 100
Offer To Join Rate        = joined / offers_accepted * 100

Every rate is 0 when its denominator is 0.
"""

from __future__ import annotations

from typing import Any

from metrics.base import BaseMetricFormula, safe_rate

MAIN_STATUS_ORDER: tuple[str, ...] = ("Processed", "Interview", "Offered", "Joined")

CANDIDATE_ON_HOLD = "Candidate on hold"

PROCESSED_CLIENT_SUB_STATUSES: frozenset[str] = frozenset(
    {
        "Processed (Client)",
        "Duplicate (Client)",
        "Client Hold",
        "Client Reject",
    }
)

PROFILE_SUBMITTED_SUB_STATUS = "processed (internal)"

# (main, sub) lower-cased -> counter name
_RECRUITER_COUNTER_MAP: dict[tuple[str, str], str] = {
    ("processed", "internal reject"): "internal_reject",
    ("processed", "candidate on hold"): "internal_hold",
    ("processed", "processed (client)"): "sent_to_client",
    ("processed", "client reject"): "client_reject",
    ("processed", "client hold"): "client_hold",
    ("processed", "duplicate (client)"): "client_duplicate",
    ("processed", "duplicate (internal)"): "client_duplicate",
    ("interview", "technical assessment"): "technical",
    ("interview", "technical assessment selected"): "technical_selected",
    ("interview", "technical assessment rejected"): "technical_reject",
    ("interview", "l1"): "l1",
    ("interview", "l1 selected"): "l1_selected",
    ("interview", "l1 rejected"): "l1_reject",
    ("interview", "l2"): "l2",
    ("interview", "l2 rejected"): "l2_reject",
    ("interview", "l3"): "end_client",
    ("interview", "end client round"): "end_client",
    ("interview", "l3 rejected"): "end_client_reject",
    ("interview", "end client rejected"): "end_client_reject",
    ("offered", "offer issued"): "offers_made",
    ("offered", "offer accepted"): "offers_accepted",
    ("offered", "offer on hold"): "offers_accepted",
    ("offered", "offer rejected"): "offers_rejected",
    ("joined", "joined"): "joined",
    ("joined", "no show"): "no_show",
}

RECRUITER_COUNTERS: tuple[str, ...] = (
    "internal_reject",
    "internal_hold",
    "sent_to_client",
    "client_reject",
    "client_hold",
    "client_duplicate",
    "technical",
    "technical_selected",
    "technical_reject",
    "l1",
    "l1_selected",
    "l1_reject",
    "l2",
    "l2_reject",
    "end_client",
    "end_client_reject",
    "offers_made",
    "offers_accepted",
    "offers_rejected",
    "joined",
    "no_show",
)

_INTERVIEW_ROUNDS = ("technical", "l1", "l2", "end_client")


def include_in_client_report(main_status: str, sub_status: str) -> bool:
    """
    True when a (main, sub) transition counts towards the client-wise report.
    """
    if sub_status == CANDIDATE_ON_HOLD:
        return False
    if main_status not in MAIN_STATUS_ORDER:
        return False
    if main_status == "Processed" and sub_status not in PROCESSED_CLIENT_SUB_STATUSES:
        return False
    return True


def recruiter_counter(main_status: str, sub_status: str) -> str | None:
    """Counter name for a transition, matched case-insensitively, or None."""
    return _RECRUITER_COUNTER_MAP.get((main_status.strip().lower(), sub_status.strip().lower()))


def is_profile_submission(main_status: str, sub_status: str) -> bool:
    return (
        main_status.strip().lower() == "processed"
        and sub_status.strip().lower() == PROFILE_SUBMITTED_SUB_STATUS
    )


class ClientStatusFormula(BaseMetricFormula):
    """
    Per-client figures next to the main-status breakdown.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        status_counts: dict[str, float] = inputs.get("status_counts", {})
        return {
            "total_candidates": int(inputs.get("total_candidates", 0)),
            "total_changes": sum(status_counts.get(s, 0) for s in MAIN_STATUS_ORDER),
        }


class RecruiterPerformanceFormula(BaseMetricFormula):
    """
    Deterministic recruiter funnel metrics with zero-denominator handling.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute funnel counts and conversion rates for one recruiter.

        Parameters
        ----------
        inputs:
            Dictionary containing the keys listed in the module docstring.

        Returns
        -------
        dict
            ``jobs_assigned``, ``profiles_submitted``, every counter in
            :data:`RECRUITER_COUNTERS`, ``interviews_total`` and the three
            rates.
        """
        counters: dict[str, float] = inputs.get("counters", {})
        profiles_submitted = int(inputs.get("profiles_submitted", 0))
        values = {name: counters.get(name, 0) for name in RECRUITER_COUNTERS}
        interviews_total = sum(values[name] for name in _INTERVIEW_ROUNDS)

        result: dict[str, Any] = {
            "jobs_assigned": int(inputs.get("jobs_assigned", 0)),
            "profiles_submitted": profiles_submitted,
        }
        result.update(values)
        result["interviews_total"] = interviews_total
        result["submission_to_client_rate"] = safe_rate(
            values["sent_to_client"], profiles_submitted, percent=True
        )
        result["interview_to_offer_rate"] = safe_rate(
            values["offers_made"], interviews_total, percent=True
        )
        result["offer_to_join_rate"] = safe_rate(
            values["joined"], values["offers_accepted"], percent=True
        )
        return result


class IndividualStatusFormula(BaseMetricFormula):
    """Per-recruiter figures for the latest-status report."""

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        status_counts: dict[str, float] = inputs.get("status_counts", {})
        return {
            "total_candidates": int(inputs.get("total_candidates", 0)),
            "active_statuses": sum(1 for count in status_counts.values() if count),
        }


def status_catalogue_labels(pairs: Any) -> tuple[str, ...]:
    """
    ``"<main> - <sub>"`` labels for a catalogue of (main, sub) pairs,
    sorted alphabetically.
    """
    return tuple(sorted({f"{main} - {sub}" for main, sub in pairs}))
