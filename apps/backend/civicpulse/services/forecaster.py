"""
forecaster.py — Category-level complaint demand forecasts.

Three views of the same history, all keyed by complaint category:

  forecast_categories     next-month projection from calendar-month counts
  forecast_daily_demand   7-day daily series for the forecast chart
  seasonal_predictions    season-driven surge explanations

MINIMUM HISTORY
───────────────
None of these functions checks that there is "enough" data. Callers are
expected to skip them below config.min_forecast_complaints (5) or, for
seasonal_predictions, config.min_seasonal_complaints (10). With fewer
records the output is still well-formed, just not meaningful.

MONTHLY PROJECTION
──────────────────
The target month is the calendar month (UTC) containing `now`. It is still
in progress, so the trend is taken from complete months only:

    current   = count in the last complete month
    previous  = count in the month before that
    raw_trend = (current - previous) / previous      (0 when previous == 0)
    trend     = min(raw_trend, max_trend) * trend_dampening[category]
    projected = round(current * (1 + trend))

Confidence is an inverse function of the coefficient of variation over the
last `confidence_months` complete months, clamped to [60, 95]:

    confidence = clamp(round(100 / (1 + cv)), 60, 95)
"""

from __future__ import annotations

import logging
import random
import statistics
from collections import Counter, defaultdict
from datetime import datetime
from typing import Sequence

from civicpulse.models.analytics import (
    CategoryForecast,
    DailyCategoryForecast,
    SeasonalPrediction,
)
from civicpulse.models.complaint import Category, ComplaintRecord, as_utc
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig
from civicpulse.services.normalizer import days_since_submitted

logger = logging.getLogger(__name__)

# Per-day jitter bands for the 7-day series (day 1 first)
_DAY_JITTER = (
    (0.90, 1.10),
    (0.95, 1.10),
    (0.90, 1.10),
    (1.00, 1.15),
    (0.95, 1.15),
    (0.90, 1.05),
    (1.00, 1.10),
)

_SEASONAL_MIN_CATEGORY_COUNT = 5
_SEASONAL_MIN_GROWTH = 10.0
_TRENDING_MIN_GROWTH = 15.0

_MONSOON = frozenset({6, 7, 8, 9})
_FESTIVAL = frozenset({9, 10, 11})
_SUMMER = frozenset({3, 4, 5})
_WINTER = frozenset({12, 1, 2})

# (months, categories, season label, reason template, recommendation)
_SEASON_RULES = (
    (
        _MONSOON,
        {Category.ROADS},
        "Monsoon Season",
        "Heavy rainfall during monsoon causes road damage, potholes, and waterlogging. "
        "Recent data shows a {pct}% increase in {category} complaints.",
        "Deploy pre-emptive road maintenance teams, stock asphalt materials, and set up "
        "rapid response units for pothole repairs.",
    ),
    (
        _MONSOON,
        {Category.SEWAGE, Category.WATER},
        "Monsoon Season",
        "Monsoon rains lead to drainage blockages and sewage overflow. "
        "Data indicates a {pct}% surge in {category} issues.",
        "Clear drainage lines proactively, ensure pump stations are operational, and "
        "deploy emergency cleanup crews.",
    ),
    (
        _FESTIVAL,
        {Category.WASTE},
        "Festival Season",
        "Festival celebrations generate {pct}% more {category} complaints than normal periods.",
        "Increase garbage collection to twice daily, deploy additional collection vehicles, "
        "and set up temporary waste stations.",
    ),
    (
        _SUMMER,
        {Category.WATER},
        "Summer Season",
        "Water scarcity during summer causes a {pct}% increase in {category} supply complaints.",
        "Optimise water distribution schedules, fix leakages proactively, and arrange "
        "tankers for shortage areas.",
    ),
    (
        _SUMMER,
        {Category.STREETLIGHTS},
        "Summer Season",
        "Higher electricity load during summer causes {pct}% more {category} complaints.",
        "Increase maintenance of electrical infrastructure, keep backup transformers ready, "
        "and monitor high-load areas.",
    ),
    (
        _WINTER,
        {Category.STREETLIGHTS},
        "Winter Season",
        "Fog and reduced visibility lead to a {pct}% increase in {category} complaints.",
        "Run proactive streetlight checks, replace dim bulbs, and increase brightness in "
        "high-traffic areas.",
    ),
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    y, m = divmod(year * 12 + (month - 1) + delta, 12)
    return y, m + 1


def _month_of(value: datetime) -> tuple[int, int]:
    value = as_utc(value)
    return value.year, value.month


def forecast_confidence(counts: Sequence[int], config: AnalyticsConfig = DEFAULT_CONFIG) -> int:
    """Inverse coefficient of variation, clamped to the configured range."""
    if not counts:
        return config.confidence_floor
    mean = statistics.fmean(counts)
    if mean == 0:
        return config.confidence_floor
    cv = statistics.pstdev(counts) / mean
    value = round(100 / (1 + cv))
    return max(config.confidence_floor, min(config.confidence_ceiling, value))


def _windows(ages: Sequence[int], size: int) -> tuple[int, int]:
    """(count in the last `size` days, count in the `size` days before)."""
    recent = sum(1 for a in ages if a < size)
    prior = sum(1 for a in ages if size <= a < 2 * size)
    return recent, prior


def _ages_by_category(
    complaints: Sequence[ComplaintRecord], now: datetime
) -> dict[Category, list[int]]:
    ages: dict[Category, list[int]] = defaultdict(list)
    for record in complaints:
        ages[record.category].append(days_since_submitted(record, now))
    return ages


# ── Public entry points ───────────────────────────────────────────────────────

def forecast_categories(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[CategoryForecast]:
    """
    Project the number of complaints per category for the month containing `now`.

    Only categories with at least one complaint in the input appear.
    Ordered by projected count desc, then category name.
    """
    target = _month_of(now)
    history = [_shift_month(*target, -k) for k in range(1, max(2, config.confidence_months) + 1)]

    monthly: dict[Category, Counter] = defaultdict(Counter)
    for record in complaints:
        monthly[record.category][_month_of(record.submitted_date)] += 1

    forecasts: list[CategoryForecast] = []
    for category, counts in monthly.items():
        current, previous = counts[history[0]], counts[history[1]]
        raw_trend = (current - previous) / previous if previous else 0.0
        trend = round(min(raw_trend, config.max_trend) * config.dampening(category), 4)

        forecasts.append(CategoryForecast(
            category=category,
            target_month=f"{target[0]:04d}-{target[1]:02d}",
            current_count=current,
            previous_count=previous,
            trend=trend,
            projected_count=max(0, round(current * (1 + trend))),
            confidence=forecast_confidence(
                [counts[m] for m in history[: config.confidence_months]], config
            ),
            month_to_date=counts[target],
        ))

    forecasts.sort(key=lambda f: (-f.projected_count, f.category.value))
    logger.debug("Forecast %d categories for %04d-%02d", len(forecasts), *target)
    return forecasts


def forecast_daily_demand(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
    seed: int = 0,
) -> list[DailyCategoryForecast]:
    """
    7-day demand series per category (categories with ≥ 2 complaints).

    Base rate is the daily average of the last 30 days, scaled by the
    week-over-week ratio (1 when the prior week is empty). Day-to-day
    variation comes from `random.Random(seed)`, so the same seed always
    produces the same series.
    """
    rng = random.Random(seed)
    results: list[DailyCategoryForecast] = []

    for category, ages in sorted(_ages_by_category(complaints, now).items(), key=lambda kv: kv[0].value):
        if len(ages) < 2:
            continue
        last30, _ = _windows(ages, 30)
        last7, prev7 = _windows(ages, 7)
        rate = (last30 / 30) * (last7 / prev7 if prev7 else 1.0)

        daily = [max(0, round(rate * rng.uniform(lo, hi))) for lo, hi in _DAY_JITTER]
        results.append(DailyCategoryForecast(
            category=category,
            daily=daily,
            total_7_days=sum(daily),
            total_30_days=round(rate * 30),
        ))

    results.sort(key=lambda r: (-r.total_7_days, r.category.value))
    return results


def _match_season(month: int, category: Category):
    for months, categories, season, reason, recommendation in _SEASON_RULES:
        if month in months and category in categories:
            return season, reason, recommendation
    return None


def seasonal_predictions(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[SeasonalPrediction]:
    """
    Explain month-over-month surges with the season they fall in.

    A category qualifies with ≥ 5 complaints, a non-empty prior 30-day
    window and ≥ 10 % growth (last 30 days vs the 30 before). When no
    qualifying category matches a season rule for `now.month`, the
    fastest-growing category above 15 % is reported as a trending
    pattern instead.
    """
    month = as_utc(now).month
    growth_by_category: dict[Category, tuple[float, int]] = {}
    predictions: list[SeasonalPrediction] = []

    for category, ages in sorted(_ages_by_category(complaints, now).items(), key=lambda kv: kv[0].value):
        last30, prev30 = _windows(ages, 30)
        if prev30 == 0:
            continue
        growth = (last30 - prev30) / prev30 * 100
        growth_by_category[category] = (growth, last30)

        if len(ages) < _SEASONAL_MIN_CATEGORY_COUNT or growth < _SEASONAL_MIN_GROWTH:
            continue
        matched = _match_season(month, category)
        if matched is None:
            continue

        season, reason, recommendation = matched
        pct = round(growth)
        predictions.append(SeasonalPrediction(
            season=season,
            category=category,
            increase_percentage=pct,
            predicted_increase=round(last30 * growth / 100),
            reason=reason.format(pct=pct, category=category.value),
            recommendation=recommendation,
        ))

    if not predictions:
        best = None
        for category, (growth, last30) in growth_by_category.items():
            if growth > _TRENDING_MIN_GROWTH and (best is None or growth > best[1]):
                best = (category, growth, last30)

        if best is not None:
            category, growth, last30 = best
            pct = round(growth)
            predictions.append(SeasonalPrediction(
                season="Trending Pattern",
                category=category,
                increase_percentage=pct,
                predicted_increase=round(last30 * growth / 100),
                reason=(
                    f"{category.value} complaints are trending upward with {pct}% "
                    "month-over-month growth, pointing at emerging infrastructure issues "
                    "or increased citizen awareness."
                ),
                recommendation=(
                    f"Conduct root cause analysis for {category.value} issues, allocate "
                    "additional resources, and put preventive measures in place."
                ),
            ))

    predictions.sort(key=lambda p: (-p.increase_percentage, p.category.value))
    return predictions[: config.max_seasonal_predictions]
