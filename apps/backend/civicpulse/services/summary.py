"""
summary.py — Headline counters and trend series for the dashboard cards.

Pure roll-ups over complaints (or over already-scored DelayRisk lists).
Time bucketing is done in whole days relative to the injected `now`, never
by wall-clock scheduling.

Percent changes never produce NaN/Infinity: an empty prior bucket yields
exactly 0.0 (see normalizer.percent_change).
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Sequence

from civicpulse.models.analytics import (
    DashboardOverview,
    DelayPredictionSummary,
    DelayRisk,
    DelayTrendPoint,
    WeeklyTrend,
)
from civicpulse.models.complaint import Category, ComplaintRecord, ComplaintStatus, as_utc
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig
from civicpulse.services.normalizer import (
    age_days,
    days_since_submitted,
    is_open,
    is_pending,
    percent_change,
    resolution_days,
    whole_days,
)

_WEEK = 7
_DEFAULT_PENDING_AGE = 3.0
_PREDICTED_DAILY_DRIFT = 0.5


def delay_prediction_summary(
    risks: Sequence[DelayRisk],
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> DelayPredictionSummary:
    """
    Counters for the delay-prediction cards.

      high_risk_complaints        risk ≥ high cutoff (70)
      likely_to_delay_today       high risk AND pending ≥ today_min_days_pending
      this_week_predicted_delays  risk ≥ medium cutoff (40)
    """
    high = [r for r in risks if r.risk_of_delay >= config.high_risk_cutoff]
    return DelayPredictionSummary(
        likely_to_delay_today=sum(1 for r in high if r.days_pending >= config.today_min_days_pending),
        this_week_predicted_delays=sum(1 for r in risks if r.risk_of_delay >= config.medium_risk_cutoff),
        high_risk_complaints=len(high),
    )


def weekly_trend(complaints: Sequence[ComplaintRecord], now: datetime) -> WeeklyTrend:
    """Submissions 0–6 days old vs 7–13 days old."""
    ages = [days_since_submitted(r, now) for r in complaints]
    last = sum(1 for a in ages if a < _WEEK)
    prior = sum(1 for a in ages if _WEEK <= a < 2 * _WEEK)
    return WeeklyTrend(last_7_days=last, prior_7_days=prior, change_percent=percent_change(last, prior))


def _recently_resolved(record: ComplaintRecord, now: datetime, days: int) -> bool:
    # A resolved/verified record without resolved_date is a data defect, never "recent"
    if not record.has_resolution or record.resolved_date is None:
        return False
    if record.resolved_date > now:
        return False
    return (now - record.resolved_date).total_seconds() < days * 86_400


def dashboard_overview(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> DashboardOverview:
    """Headline counters for the officer overview page."""
    now = as_utc(now)
    statuses = Counter(r.status for r in complaints)
    total = len(complaints)
    resolved_total = statuses[ComplaintStatus.RESOLVED] + statuses[ComplaintStatus.VERIFIED]

    times = [d for d in (resolution_days(r) for r in complaints) if d is not None]
    categories = Counter(r.category.value for r in complaints)
    category_counts = {c.value: categories.get(c.value, 0) for c in Category}

    return DashboardOverview(
        total_count=total,
        pending_count=statuses[ComplaintStatus.PENDING],
        resolved_count=statuses[ComplaintStatus.RESOLVED],
        verified_count=statuses[ComplaintStatus.VERIFIED],
        # "active" = pending + verified, the dashboard's notion of open
        active_count=sum(1 for r in complaints if is_open(r)),
        resolution_rate=round(resolved_total / total * 100) if total else 0,
        avg_resolution_days=round(sum(times) / len(times), 1) if times else 0.0,
        recently_resolved=sum(
            1 for r in complaints if _recently_resolved(r, now, config.recent_resolution_days)
        ),
        weekly_trend=weekly_trend(complaints, now),
        category_counts=dict(sorted(category_counts.items(), key=lambda kv: (-kv[1], kv[0]))),
    )


def delay_trend_series(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
) -> list[DelayTrendPoint]:
    """
    Seven historical points followed by seven predicted points.

    Historical: mean resolution days of complaints resolved on that day
    (0 when none). Predicted: mean age of pending complaints (3 days when
    nothing is pending) drifting by half a day per day ahead.
    """
    now = as_utc(now)
    by_day: dict[int, list[float]] = {}
    for record in complaints:
        days = resolution_days(record)
        if days is None or record.resolved_date > now:
            continue
        ago = whole_days(record.resolved_date, now)
        if ago < _WEEK:
            by_day.setdefault(ago, []).append(days)

    points: list[DelayTrendPoint] = []
    for ago in range(_WEEK - 1, -1, -1):
        values = by_day.get(ago, [])
        points.append(DelayTrendPoint(
            day="Today" if ago == 0 else f"{ago}d ago",
            historical_avg=round(sum(values) / len(values), 1) if values else 0.0,
        ))

    pending_ages = [age_days(r, now) for r in complaints if is_pending(r)]
    base = sum(pending_ages) / len(pending_ages) if pending_ages else _DEFAULT_PENDING_AGE
    for ahead in range(1, _WEEK + 1):
        points.append(DelayTrendPoint(
            day=f"Day {ahead}",
            predicted_avg=round(base + ahead * _PREDICTED_DAILY_DRIFT, 1),
        ))
    return points
