"""
insights.py — Assemble the per-panel payloads the dashboard renders.

Each builder runs the independent analytics models over the same complaint
list and packs their results into one response model. This is also where
the documented minimum-history gates live: the models themselves never
decide whether there is "enough" data, the panel builders do, and they say
so through `insufficient_data` instead of returning partial guesses.

All builders are synchronous and pure; routes/analytics.py supplies `now`.
"""

import logging
from datetime import datetime
from typing import Sequence

from civicpulse.models.analytics import (
    AnalyticsSnapshot,
    DelayRiskResponse,
    ForecastResponse,
    HotspotResponse,
)
from civicpulse.models.complaint import ComplaintRecord
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig
from civicpulse.services.delay_risk import predict_delay_risks
from civicpulse.services.department_load import (
    calculate_department_load,
    category_delay_probability,
)
from civicpulse.services.forecaster import (
    forecast_categories,
    forecast_daily_demand,
    seasonal_predictions,
)
from civicpulse.services.hotspots import generate_hotspot_alerts, predict_hotspots
from civicpulse.services.summary import (
    dashboard_overview,
    delay_prediction_summary,
    delay_trend_series,
)

logger = logging.getLogger(__name__)


def build_hotspots(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> HotspotResponse:
    predictions = predict_hotspots(complaints, now, config)
    return HotspotResponse(
        predictions=predictions,
        alerts=generate_hotspot_alerts(predictions, config),
    )


def build_forecasts(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
    seed: int = 0,
) -> ForecastResponse:
    """Forecasts need min_forecast_complaints; seasonal needs min_seasonal_complaints."""
    if len(complaints) < config.min_forecast_complaints:
        logger.debug(
            "Forecast skipped: %d complaints < minimum %d",
            len(complaints), config.min_forecast_complaints,
        )
        return ForecastResponse(insufficient_data=True, categories=[], daily=[], seasonal=[])

    seasonal = []
    if len(complaints) >= config.min_seasonal_complaints:
        seasonal = seasonal_predictions(complaints, now, config)

    return ForecastResponse(
        insufficient_data=False,
        categories=forecast_categories(complaints, now, config),
        daily=forecast_daily_demand(complaints, now, config, seed=seed),
        seasonal=seasonal,
    )


def build_delays(
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> DelayRiskResponse:
    loads = calculate_department_load(complaints, config)
    risks = predict_delay_risks(complaints, now, config, loads=loads)
    return DelayRiskResponse(
        risks=risks,
        summary=delay_prediction_summary(risks, config),
        department_loads=loads,
        category_delay_probability=category_delay_probability(complaints, config),
        trend=delay_trend_series(complaints, now),
    )


def build_snapshot(
    municipal_id: str,
    complaints: Sequence[ComplaintRecord],
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
    seed: int = 0,
) -> AnalyticsSnapshot:
    """Every panel at once, for the AI insights page."""
    return AnalyticsSnapshot(
        municipal_id=municipal_id,
        generated_at=now,
        complaint_count=len(complaints),
        overview=dashboard_overview(complaints, now, config),
        hotspots=build_hotspots(complaints, now, config),
        forecasts=build_forecasts(complaints, now, config, seed=seed),
        delays=build_delays(complaints, now, config),
    )
