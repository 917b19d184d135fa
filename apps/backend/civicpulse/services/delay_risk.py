"""
delay_risk.py — Delay-risk scoring for pending complaints.

Only `pending` complaints are scored. Verified complaints count as
"active" on the dashboard but already have a resolution attached, so they
are never delay candidates (see normalizer.is_pending).

FORMULA
───────
Three signals, each normalised to [0, 1]:

    age         min(age_days / baseline_days[category], 1)
    load        min(department_open / department_capacity, 1)
    engagement  1 - min(votes / engagement_saturation_votes, 1)

    risk_of_delay = round(100 * (w.age*age + w.load*load + w.engagement*engagement))

with the weights in config.delay_weights (0.5 / 0.3 / 0.2, sum = 1).
Levels: low < 40 ≤ medium < 70 ≤ high.

REASONS
───────
A signal contributes a reason once it reaches its threshold
(age ≥ 0.5, load ≥ 0.5, engagement ≥ 0.8). Reasons are ordered by weighted
contribution desc (ties keep the order age, load, engagement) and capped
at config.max_reasons. Same input → same reasons, word for word; the
dashboard's click-to-expand detail relies on it.

USAGE
─────
    from civicpulse.services.delay_risk import predict_delay_risks

    risks = predict_delay_risks(complaints, now)
    risks[0].risk_of_delay  → 77
    risks[0].reasons        → ["Pending 40 days, 5.7x category average (7 days)", ...]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from civicpulse.models.analytics import DelayRisk, DepartmentLoad
from civicpulse.models.complaint import Category, ComplaintRecord
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig
from civicpulse.services.department_load import calculate_department_load
from civicpulse.services.normalizer import NormalizedComplaint, is_pending, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DelaySignals:
    age: float
    load: float
    engagement: float


def compute_signals(
    n: NormalizedComplaint,
    department_open: int,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> DelaySignals:
    baseline = max(config.baseline_days(n.record.category), 1)
    capacity = max(config.department_capacity, 1)
    saturation = max(config.engagement_saturation_votes, 1)
    return DelaySignals(
        age=min(n.age_days / baseline, 1.0),
        load=min(department_open / capacity, 1.0),
        engagement=1.0 - min(n.record.votes / saturation, 1.0),
    )


def compute_risk_level(score: int, config: AnalyticsConfig = DEFAULT_CONFIG) -> str:
    """Map a 0–100 risk score → low | medium | high."""
    if score >= config.high_risk_cutoff:
        return "high"
    if score >= config.medium_risk_cutoff:
        return "medium"
    return "low"


def compute_reasons(
    n: NormalizedComplaint,
    signals: DelaySignals,
    department_open: int,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[str]:
    w = config.delay_weights
    baseline = max(config.baseline_days(n.record.category), 1)
    candidates: list[tuple[float, int, str]] = []

    if signals.age >= config.age_reason_threshold:
        ratio = n.age_days / baseline
        candidates.append((
            w.age * signals.age, 0,
            f"Pending {n.age_days} days, {ratio:.1f}x category average ({baseline} days)",
        ))
    if signals.load >= config.load_reason_threshold:
        candidates.append((
            w.load * signals.load, 1,
            f"Department backlog: {department_open} open complaints",
        ))
    if signals.engagement >= config.engagement_reason_threshold:
        candidates.append((
            w.engagement * signals.engagement, 2,
            f"Low citizen engagement ({n.record.votes} votes)",
        ))

    candidates.sort(key=lambda c: (-c[0], c[1]))
    return [text for _, _, text in candidates[: config.max_reasons]]


def score_complaint(
    record: ComplaintRecord,
    now: datetime,
    department_open: int,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> DelayRisk:
    """Score a single complaint. Callers pass pending complaints only."""
    n = normalize(record, now, config)
    signals = compute_signals(n, department_open, config)
    w = config.delay_weights

    raw = 100 * (w.age * signals.age + w.load * signals.load + w.engagement * signals.engagement)
    score = max(0, min(100, round(raw)))

    return DelayRisk(
        complaint_id=record.id,
        category=record.category,
        assigned_team=n.assigned_team,
        risk_of_delay=score,
        risk_level=compute_risk_level(score, config),
        reasons=compute_reasons(n, signals, department_open, config),
        current_status=record.status,
        days_pending=n.age_days,
    )


def predict_delay_risks(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
    loads: Optional[Sequence[DepartmentLoad]] = None,
) -> list[DelayRisk]:
    """
    Score every pending complaint in `complaints`.

    `loads` is the department snapshot used for the backlog signal; it is
    computed from `complaints` when omitted. Ordered by risk desc, then
    days pending desc, then complaint id.
    """
    if loads is None:
        loads = calculate_department_load(complaints, config)
    open_by_category: dict[Category, int] = {d.category: d.current_open_complaints for d in loads}

    # pending only: verified complaints are active but already resolved once
    risks = [
        score_complaint(record, now, open_by_category.get(record.category, 0), config)
        for record in complaints
        if is_pending(record)
    ]
    risks.sort(key=lambda r: (-r.risk_of_delay, -r.days_pending, str(r.complaint_id)))
    logger.debug("Scored %d pending complaints for delay risk", len(risks))
    return risks
