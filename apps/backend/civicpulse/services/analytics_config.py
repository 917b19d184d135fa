"""
analytics_config.py — Every tunable number used by the analytics layer.

All models in civicpulse.services take an `AnalyticsConfig` argument
(defaulting to DEFAULT_CONFIG) instead of reading module globals, so a
test or a caller can score the same complaints under different
thresholds without monkeypatching.

The department-overload threshold, hotspot grid size and capacity
heuristic were picked empirically from dashboard sample data. Treat them
as tunable parameters, not business rules.

USAGE
─────
    from civicpulse.services.analytics_config import DEFAULT_CONFIG

    strict = DEFAULT_CONFIG.model_copy(update={"department_overload_open": 5})
    loads = calculate_department_load(complaints, strict)
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from civicpulse.models.complaint import Category


class DelayWeights(BaseModel):
    """Weights of the three delay-risk signals. Must sum to 1."""

    model_config = ConfigDict(frozen=True)

    age: float = 0.5          # time pending relative to the category baseline
    load: float = 0.3         # department backlog relative to capacity
    engagement: float = 0.2   # inverse of citizen votes

    @model_validator(mode="after")
    def _sum_to_one(self) -> "DelayWeights":
        total = self.age + self.load + self.engagement
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"delay weights must sum to 1, got {total}")
        return self


class HotspotThresholds(BaseModel):
    """Minimum zone score for each hotspot risk level (below medium → low)."""

    model_config = ConfigDict(frozen=True)

    critical: float = 20.0
    high: float = 10.0
    medium: float = 4.0


def _default_baselines() -> dict[Category, int]:
    # Expected days to resolve, per department
    return {
        Category.ROADS: 7,
        Category.WASTE: 3,
        Category.WATER: 4,
        Category.STREETLIGHTS: 5,
        Category.SEWAGE: 5,
        Category.OTHER: 7,
    }


def _default_dampening() -> dict[Category, float]:
    # Volatile categories (waste spikes around festivals, water in summer)
    # get a stronger damping of their month-over-month trend.
    return {
        Category.ROADS: 0.85,
        Category.WASTE: 0.7,
        Category.WATER: 0.75,
        Category.STREETLIGHTS: 0.9,
        Category.SEWAGE: 0.8,
        Category.OTHER: 1.0,
    }


class AnalyticsConfig(BaseModel):
    """Frozen bundle of analytics constants."""

    model_config = ConfigDict(frozen=True)

    # ── Shared ──────────────────────────────────────────────────────────────
    category_baseline_days: dict[Category, int] = Field(default_factory=_default_baselines)
    fallback_baseline_days: int = 7

    # ── Hotspot predictor ───────────────────────────────────────────────────
    grid_cell_degrees: float = Field(default=0.01, gt=0)   # ≈ 1.1 km at the equator
    hotspot_window_days: int = 90
    hotspot_thresholds: HotspotThresholds = Field(default_factory=HotspotThresholds)
    emerging_change_percent: float = 50.0
    receding_change_percent: float = -30.0
    max_hotspot_alerts: int = 5

    # ── Category forecaster ─────────────────────────────────────────────────
    min_forecast_complaints: int = 5      # enforced by callers, not the model
    min_seasonal_complaints: int = 10     # enforced by callers, not the model
    trend_dampening: dict[Category, float] = Field(default_factory=_default_dampening)
    max_trend: float = 1.0                # raw month-over-month growth cap (+100 %)
    confidence_months: int = 3
    confidence_floor: int = 60
    confidence_ceiling: int = 95
    max_seasonal_predictions: int = 4

    # ── Delay-risk scorer ───────────────────────────────────────────────────
    delay_weights: DelayWeights = Field(default_factory=DelayWeights)
    department_capacity: int = 20         # open complaints a department absorbs
    engagement_saturation_votes: int = 50
    age_reason_threshold: float = 0.5
    load_reason_threshold: float = 0.5
    engagement_reason_threshold: float = 0.8
    max_reasons: int = 3
    medium_risk_cutoff: int = 40
    high_risk_cutoff: int = 70

    # ── Department load ─────────────────────────────────────────────────────
    department_overload_open: int = 10
    delay_probability_days: float = 5.0
    default_delay_probability: int = 30

    # ── Summaries ───────────────────────────────────────────────────────────
    today_min_days_pending: int = 3
    recent_resolution_days: int = 7

    def baseline_days(self, category: Category) -> int:
        return self.category_baseline_days.get(category, self.fallback_baseline_days)

    def dampening(self, category: Category) -> float:
        return self.trend_dampening.get(category, 1.0)


DEFAULT_CONFIG = AnalyticsConfig()
