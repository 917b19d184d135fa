"""
hotspots.py — Geographic hotspot prediction over complaint records.

Complaints are bucketed into a fixed-size lat/lng grid (one zone per
non-empty cell) and every zone is scored by a vote-weighted count of its
recent complaints:

    weight(c) = ln(votes + 1) + 1
    score     = Σ weight(c)  for c submitted within hotspot_window_days

A zero-vote complaint still counts as 1; a 500-vote complaint counts
as ≈ 7.2, so heavily upvoted issues dominate without one viral complaint
swamping a whole zone.

Ordering: score desc → raw complaint count desc → zone id asc.

Complaints without usable coordinates are skipped here (they still count
in the forecasts and department loads). When no complaint has coordinates
the predictor returns [] and the caller renders its "not enough data"
state.

USAGE
─────
    from civicpulse.services.hotspots import predict_hotspots, generate_hotspot_alerts

    predictions = predict_hotspots(complaints, now)
    alerts      = generate_hotspot_alerts(predictions)
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime
from typing import Sequence

from civicpulse.models.analytics import HotspotAlert, HotspotPrediction
from civicpulse.models.complaint import Category, ComplaintRecord
from civicpulse.services.analytics_config import (
    DEFAULT_CONFIG,
    AnalyticsConfig,
    HotspotThresholds,
)
from civicpulse.services.normalizer import NormalizedComplaint, normalize, percent_change

logger = logging.getLogger(__name__)

_CONFIDENCE_BASE = 65.0
_CONFIDENCE_PER_COMPLAINT = 1.5
_CONFIDENCE_CAP = 95.0
_SURGE_WARNING_PERCENT = 30.0

_CATEGORY_ACTIONS = {
    Category.WASTE: "Deploy additional waste collection teams immediately.",
    Category.ROADS: "Deploy road maintenance crew immediately.",
    Category.WATER: "Deploy water supply team immediately.",
    Category.SEWAGE: "Deploy drainage clearing crew immediately.",
    Category.STREETLIGHTS: "Deploy electrical maintenance crew immediately.",
}


# ── Pure scoring functions ────────────────────────────────────────────────────

def complaint_weight(votes: int) -> float:
    """ln(votes + 1) + 1 — logarithmic engagement weight, never below 1."""
    return math.log(max(votes, 0) + 1) + 1


def classify_zone(score: float, thresholds: HotspotThresholds) -> str:
    """Map a zone score → low | medium | high | critical."""
    if score >= thresholds.critical:
        return "critical"
    if score >= thresholds.high:
        return "high"
    if score >= thresholds.medium:
        return "medium"
    return "low"


def _week_change(last_week: int, prior_week: int) -> float:
    """
    % change of last week over the week before.

    An empty prior week counts as one complaint, so a cluster that appeared
    this week reads as growth; two empty weeks are 0.
    """
    if last_week == 0 and prior_week == 0:
        return 0.0
    return percent_change(last_week, max(prior_week, 1))


def _badge(change: float, config: AnalyticsConfig) -> str:
    if change > config.emerging_change_percent:
        return "emerging"
    if change < config.receding_change_percent:
        return "resolved"
    return "consistent"


def _alert_text(level: str, category: str, change: float, recent: int) -> str:
    if level == "critical":
        return (
            f"CRITICAL: {recent} recent {category} complaints in this zone "
            f"({change:+.0f}% vs last week)"
        )
    if level == "high":
        return f"HIGH: {category} hotspot emerging. Immediate preventive action recommended."
    if level == "medium":
        trend = "increasing" if change > 0 else "stable"
        return f"MEDIUM: Monitor {category} complaints in this area. Trend: {trend}."
    return f"LOW: {category} complaints stable. Continue routine monitoring."


def _category_mix(members: Sequence[NormalizedComplaint]) -> dict[str, int]:
    counts = Counter(m.record.category.value for m in members)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return dict(ordered)


def _score_zone(
    zone: str,
    members: Sequence[NormalizedComplaint],
    config: AnalyticsConfig,
) -> HotspotPrediction:
    recent = [m for m in members if m.days_since_submitted <= config.hotspot_window_days]
    score = round(sum(complaint_weight(m.record.votes) for m in recent), 4)
    level = classify_zone(score, config.hotspot_thresholds)

    last_week = sum(1 for m in members if m.days_since_submitted <= 6)
    prior_week = sum(1 for m in members if 7 <= m.days_since_submitted <= 13)
    change = _week_change(last_week, prior_week)

    mix = _category_mix(members)
    categories = list(mix)
    top = categories[0]

    lat = round(sum(m.coordinates.lat for m in members) / len(members), 6)
    lng = round(sum(m.coordinates.lng for m in members) / len(members), 6)

    return HotspotPrediction(
        zone_id=zone,
        latitude=lat,
        longitude=lng,
        complaint_count=len(members),
        recent_count=len(recent),
        risk_score=score,
        risk_level=level,
        category_mix=mix,
        top_category=top,
        secondary_category=categories[1] if len(categories) > 1 else None,
        change_vs_last_week=change,
        badge=_badge(change, config),
        confidence=min(_CONFIDENCE_CAP, _CONFIDENCE_BASE + _CONFIDENCE_PER_COMPLAINT * len(recent)),
        alert=_alert_text(level, top, change, len(recent)),
    )


# ── Public entry points ───────────────────────────────────────────────────────

def predict_hotspots(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[HotspotPrediction]:
    """
    Cluster complaints into grid zones and rank the zones by risk.

    Returns a new list on every call; [] when no complaint has usable
    coordinates.
    """
    zones: dict[str, list[NormalizedComplaint]] = defaultdict(list)
    for record in complaints:
        n = normalize(record, now, config)
        if n.zone_id is not None:
            zones[n.zone_id].append(n)

    if not zones:
        logger.debug("No geolocated complaints among %d records", len(complaints))
        return []

    predictions = [_score_zone(zone, members, config) for zone, members in zones.items()]
    predictions.sort(key=lambda p: (-p.risk_score, -p.complaint_count, p.zone_id))
    logger.debug("Scored %d hotspot zones from %d records", len(predictions), len(complaints))
    return predictions


def generate_hotspot_alerts(
    predictions: Sequence[HotspotPrediction],
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[HotspotAlert]:
    """
    Actionable alerts for the dashboard banner.

    Critical zones always alert; high zones alert only when they grew more
    than 30 % week over week. Keeps the predictions' order, capped at
    config.max_hotspot_alerts.
    """
    alerts: list[HotspotAlert] = []
    for pred in predictions:
        category = pred.top_category
        if pred.risk_level == "critical":
            alerts.append(HotspotAlert(
                type="critical",
                zone_id=pred.zone_id,
                message=(
                    f"{category} complaints expected to surge in zone {pred.zone_id} "
                    f"({pred.change_vs_last_week:+.0f}%)."
                ),
                action=_CATEGORY_ACTIONS.get(
                    Category(category), "Deploy specialized teams immediately."
                ),
            ))
        elif pred.risk_level == "high" and pred.change_vs_last_week > _SURGE_WARNING_PERCENT:
            alerts.append(HotspotAlert(
                type="warning",
                zone_id=pred.zone_id,
                message=(
                    f"Growing {category} hotspot in zone {pred.zone_id}. "
                    f"{pred.recent_count} complaints in the last {config.hotspot_window_days} days."
                ),
                action=f"Increase {category} monitoring frequency and allocate additional resources.",
            ))
    return alerts[: config.max_hotspot_alerts]
