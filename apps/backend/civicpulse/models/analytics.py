"""
analytics.py — Pydantic models for everything the analytics layer returns.

All of these are value objects: built fresh on every call, owned by the
caller, never cached or mutated by the services. They serialise with
camelCase aliases (riskOfDelay, avgTimeToResolve, ...) because that is the
shape the dashboard components already consume; FastAPI serialises
response models by alias.

Hotspots
────────
  HotspotPrediction       one grid zone, highest risk first
  HotspotAlert            actionable message for critical / surging zones

Forecasts
─────────
  CategoryForecast        next-month projection per category
  DailyCategoryForecast   7-day demand series per category
  SeasonalPrediction      season-driven surge explanation

Delays
──────
  DelayRisk               one scored pending complaint
  DepartmentLoad          backlog + throughput per department
  CategoryDelayProbability
  DelayPredictionSummary  headline counters
  DelayTrendPoint         historical vs predicted resolution days

Dashboard
─────────
  WeeklyTrend, DashboardOverview

Request / response envelopes for routes/analytics.py sit at the bottom.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from civicpulse.models.complaint import Category, ComplaintRecord, ComplaintStatus

HotspotLevel = Literal["low", "medium", "high", "critical"]
RiskLevel = Literal["low", "medium", "high"]
HotspotBadge = Literal["emerging", "consistent", "resolved"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Hotspots ──────────────────────────────────────────────────────────────────

class HotspotPrediction(_CamelModel):
    """A grid cell of complaints with its risk score."""

    zone_id: str                 # "<lat_idx>:<lng_idx>" grid cell key
    latitude: float              # centroid of the zone's complaints
    longitude: float
    complaint_count: int         # all complaints in the zone
    recent_count: int            # complaints inside the trailing window
    risk_score: float            # Σ ln(votes + 1) + 1 over the window
    risk_level: HotspotLevel
    category_mix: dict[str, int]  # category → count, largest first
    top_category: str
    secondary_category: Optional[str] = None
    change_vs_last_week: float = 0.0   # % change, last 7 days vs the 7 before
    badge: HotspotBadge = "consistent"
    confidence: float = 65.0
    alert: str = ""


class HotspotAlert(_CamelModel):
    type: Literal["critical", "warning"]
    zone_id: str
    message: str
    action: str


# ── Forecasts ─────────────────────────────────────────────────────────────────

class CategoryForecast(_CamelModel):
    """Projected complaint volume for the month containing `now`."""

    category: Category
    target_month: str          # "YYYY-MM"
    current_count: int         # last complete month
    previous_count: int        # the month before that
    trend: float               # damped month-over-month change (0.25 = +25 %)
    projected_count: int
    confidence: int = Field(ge=0, le=100)
    month_to_date: int = 0     # complaints already filed in the target month


class DailyCategoryForecast(_CamelModel):
    category: Category
    daily: list[int]           # next 7 days, day 1 first
    total_7_days: int
    total_30_days: int


class SeasonalPrediction(_CamelModel):
    season: str
    category: Category
    increase_percentage: int
    predicted_increase: int
    reason: str
    recommendation: str


# ── Delays ────────────────────────────────────────────────────────────────────

class DelayRisk(_CamelModel):
    """Delay-risk score for a single pending complaint."""

    complaint_id: int | str
    category: Category
    assigned_team: str
    risk_of_delay: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    reasons: list[str] = Field(default_factory=list)
    current_status: ComplaintStatus
    days_pending: int


class DepartmentLoad(_CamelModel):
    department: str
    category: Category
    current_open_complaints: int
    avg_time_to_resolve: float   # days, 1 decimal; 0 when nothing resolved
    resolved_count: int          # denominator of avg_time_to_resolve
    delay_risk: RiskLevel


class CategoryDelayProbability(_CamelModel):
    category: Category
    delay_probability: int       # % of resolved complaints that ran late
    avg_resolution_days: float


class DelayPredictionSummary(_CamelModel):
    likely_to_delay_today: int = 0
    this_week_predicted_delays: int = 0
    high_risk_complaints: int = 0


class DelayTrendPoint(_CamelModel):
    day: str                     # "6d ago" … "Today", then "Day 1" … "Day 7"
    historical_avg: float = 0.0
    predicted_avg: float = 0.0


# ── Dashboard ─────────────────────────────────────────────────────────────────

class WeeklyTrend(_CamelModel):
    last_7_days: int
    prior_7_days: int
    change_percent: float        # exactly 0.0 when prior_7_days is 0


class DashboardOverview(_CamelModel):
    total_count: int
    pending_count: int
    resolved_count: int
    verified_count: int
    active_count: int            # pending + verified
    resolution_rate: int         # % of complaints that reached resolved/verified
    avg_resolution_days: float
    recently_resolved: int
    weekly_trend: WeeklyTrend
    category_counts: dict[str, int]


# ── Request / response envelopes ──────────────────────────────────────────────

class AnalyticsRequest(_CamelModel):
    """Body of the POST /api/v1/analytics/* routes."""

    complaints: list[ComplaintRecord] = Field(default_factory=list, max_length=20_000)
    # Reference time; the server clock is used when omitted.
    now: Optional[datetime] = None
    # Seed for the jitter in the daily demand series.
    seed: int = 0


class HotspotResponse(_CamelModel):
    predictions: list[HotspotPrediction]
    alerts: list[HotspotAlert]


class ForecastResponse(_CamelModel):
    insufficient_data: bool
    categories: list[CategoryForecast]
    daily: list[DailyCategoryForecast]
    seasonal: list[SeasonalPrediction]


class DelayRiskResponse(_CamelModel):
    risks: list[DelayRisk]
    summary: DelayPredictionSummary
    department_loads: list[DepartmentLoad]
    category_delay_probability: list[CategoryDelayProbability]
    trend: list[DelayTrendPoint]


class AnalyticsSnapshot(_CamelModel):
    """Everything the dashboard's AI insights page renders, in one payload."""

    municipal_id: str
    generated_at: datetime
    complaint_count: int
    overview: DashboardOverview
    hotspots: HotspotResponse
    forecasts: ForecastResponse
    delays: DelayRiskResponse
