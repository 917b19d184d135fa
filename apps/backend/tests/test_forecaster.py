"""
test_forecaster.py — Unit tests for the category forecaster: monthly
projections, the seeded 7-day demand series and seasonal surges.

Reference time is 2025-06-15 (see conftest.NOW), so the target month is
2025-06 and the complete history months are May, April and March.

Run:
    cd apps/backend
    pytest tests/test_forecaster.py -v
"""

from datetime import datetime, timezone

import pytest

from civicpulse.models.complaint import Category, ComplaintRecord
from civicpulse.services.analytics_config import DEFAULT_CONFIG
from civicpulse.services.forecaster import (
    forecast_categories,
    forecast_confidence,
    forecast_daily_demand,
    seasonal_predictions,
)
from conftest import NOW, make_complaint


def _in_month(category, year, month, count, start_id=1):
    """`count` complaints spread over the first days of a month."""
    return [
        ComplaintRecord(
            id=f"{category}-{year}{month:02d}-{start_id + i}",
            category=category,
            submitted_date=datetime(year, month, 1 + i % 28, 10, tzinfo=timezone.utc),
        )
        for i in range(count)
    ]


def _by_category(forecasts):
    return {f.category: f for f in forecasts}


# ── forecast_confidence ──────────────────────────────────────────────────────

class TestForecastConfidence:

    @pytest.mark.parametrize("counts,expected", [
        ([], 60),
        ([0, 0, 0], 60),
        ([10, 10, 10], 95),     # cv 0 → 100, clamped to the ceiling
        ([10, 8, 9], 92),
        ([10, 0, 0], 60),       # very noisy → floor
    ])
    def test_values(self, counts, expected):
        assert forecast_confidence(counts) == expected


# ── forecast_categories ──────────────────────────────────────────────────────

class TestForecastCategories:

    def test_damped_growth(self):
        """Roads 10 in May vs 8 in April: +25 % raw, ×0.85 damping → 12 projected."""
        complaints = _in_month("roads", 2025, 5, 10) + _in_month("roads", 2025, 4, 8)
        [forecast] = forecast_categories(complaints, NOW)

        assert forecast.category == Category.ROADS
        assert forecast.target_month == "2025-06"
        assert forecast.current_count == 10
        assert forecast.previous_count == 8
        assert forecast.trend == 0.2125
        assert forecast.projected_count == 12

    def test_growth_is_capped_before_damping(self):
        complaints = _in_month("other", 2025, 5, 30) + _in_month("other", 2025, 4, 5)
        [forecast] = forecast_categories(complaints, NOW)
        assert forecast.trend == DEFAULT_CONFIG.max_trend
        assert forecast.projected_count == 60

    def test_decline_is_damped(self):
        complaints = _in_month("waste", 2025, 5, 5) + _in_month("waste", 2025, 4, 10)
        [forecast] = forecast_categories(complaints, NOW)
        assert forecast.trend == -0.35
        assert forecast.projected_count == 3

    def test_empty_previous_month_means_flat_trend(self):
        [forecast] = forecast_categories(_in_month("water", 2025, 5, 4), NOW)
        assert forecast.trend == 0.0
        assert forecast.projected_count == 4

    def test_categories_absent_from_input_are_not_forecast(self):
        forecasts = forecast_categories(_in_month("roads", 2025, 5, 3), NOW)
        assert [f.category for f in forecasts] == [Category.ROADS]

    def test_month_to_date_counts_target_month_only(self):
        complaints = _in_month("roads", 2025, 6, 4) + _in_month("roads", 2025, 5, 2)
        [forecast] = forecast_categories(complaints, NOW)
        assert forecast.month_to_date == 4
        assert forecast.current_count == 2

    def test_confidence_uses_three_complete_months(self):
        complaints = (
            _in_month("roads", 2025, 5, 10)
            + _in_month("roads", 2025, 4, 8)
            + _in_month("roads", 2025, 3, 9)
            + _in_month("roads", 2025, 1, 40)   # outside the window
        )
        [forecast] = forecast_categories(complaints, NOW)
        assert forecast.confidence == 92

    def test_year_boundary(self):
        january = datetime(2025, 1, 20, tzinfo=timezone.utc)
        complaints = _in_month("roads", 2024, 12, 6) + _in_month("roads", 2024, 11, 3)
        [forecast] = forecast_categories(complaints, january)
        assert forecast.target_month == "2025-01"
        assert (forecast.current_count, forecast.previous_count) == (6, 3)

    def test_ordered_by_projection_then_name(self):
        complaints = (
            _in_month("water", 2025, 5, 4)
            + _in_month("sewage", 2025, 5, 4)
            + _in_month("roads", 2025, 5, 9)
        )
        forecasts = forecast_categories(complaints, NOW)
        assert [f.category for f in forecasts] == [Category.ROADS, Category.SEWAGE, Category.WATER]

    def test_returns_fresh_list_each_call(self):
        complaints = _in_month("roads", 2025, 5, 3)
        first = forecast_categories(complaints, NOW)
        second = forecast_categories(complaints, NOW)
        assert first == second
        assert first is not second


# ── forecast_daily_demand ────────────────────────────────────────────────────

class TestDailyDemand:

    def _history(self):
        recent = [make_complaint(complaint_id=i, category="roads", days_ago=i) for i in range(1, 7)]
        prior = [make_complaint(complaint_id=10 + i, category="roads", days_ago=7 + i) for i in range(3)]
        older = [make_complaint(complaint_id=20 + i, category="waste", days_ago=20 + i) for i in range(4)]
        return recent + prior + older

    def test_same_seed_same_series(self):
        complaints = self._history()
        first = forecast_daily_demand(complaints, NOW, seed=42)
        second = forecast_daily_demand(complaints, NOW, seed=42)
        assert first == second

    def test_seven_days_and_totals(self):
        for forecast in forecast_daily_demand(self._history(), NOW, seed=3):
            assert len(forecast.daily) == 7
            assert forecast.total_7_days == sum(forecast.daily)
            assert all(v >= 0 for v in forecast.daily)

    def test_rate_scaled_by_week_over_week_ratio(self):
        # roads: 9 in last 30 days, 6 last week vs 3 the week before → ×2
        by_category = _by_category(forecast_daily_demand(self._history(), NOW))
        assert by_category[Category.ROADS].total_30_days == 18

    def test_empty_prior_week_keeps_base_rate(self):
        # waste: 4 in last 30 days, nothing in either of the last two weeks
        by_category = _by_category(forecast_daily_demand(self._history(), NOW))
        assert by_category[Category.WASTE].total_30_days == 4

    def test_single_complaint_category_skipped(self):
        complaints = self._history() + [make_complaint(complaint_id=99, category="water", days_ago=1)]
        categories = {f.category for f in forecast_daily_demand(complaints, NOW)}
        assert Category.WATER not in categories


# ── seasonal_predictions ─────────────────────────────────────────────────────

class TestSeasonalPredictions:

    def _growth(self, category, last30, prev30, start_id=0):
        return (
            [make_complaint(complaint_id=start_id + i, category=category, days_ago=1 + i)
             for i in range(last30)]
            + [make_complaint(complaint_id=start_id + 100 + i, category=category, days_ago=35 + i)
               for i in range(prev30)]
        )

    def test_monsoon_roads_surge(self):
        [prediction] = seasonal_predictions(self._growth("roads", 12, 6), NOW)
        assert prediction.season == "Monsoon Season"
        assert prediction.category == Category.ROADS
        assert prediction.increase_percentage == 100
        assert prediction.predicted_increase == 12
        assert "100% increase in roads complaints" in prediction.reason

    def test_out_of_season_category_not_explained_by_season(self):
        complaints = self._growth("roads", 12, 6) + self._growth("waste", 12, 6, start_id=1000)
        predictions = seasonal_predictions(complaints, NOW)
        assert [p.category for p in predictions] == [Category.ROADS]

    def test_trending_fallback_when_no_season_matches(self):
        [prediction] = seasonal_predictions(self._growth("waste", 6, 4), NOW)
        assert prediction.season == "Trending Pattern"
        assert prediction.category == Category.WASTE
        assert prediction.increase_percentage == 50

    def test_small_category_can_still_trend(self):
        # 4 complaints is below the seasonal minimum but still feeds the fallback
        [prediction] = seasonal_predictions(self._growth("roads", 3, 1), NOW)
        assert prediction.season == "Trending Pattern"
        assert prediction.increase_percentage == 200

    def test_flat_history_yields_nothing(self):
        assert seasonal_predictions(self._growth("roads", 5, 5), NOW) == []

    def test_no_prior_window_yields_nothing(self):
        assert seasonal_predictions(self._growth("roads", 8, 0), NOW) == []

    def test_festival_season_in_october(self):
        october = datetime(2025, 10, 15, 12, tzinfo=timezone.utc)
        complaints = [
            make_complaint(complaint_id=i, category="waste", days_ago=1 + i, now=october)
            for i in range(9)
        ] + [
            make_complaint(complaint_id=100 + i, category="waste", days_ago=35 + i, now=october)
            for i in range(6)
        ]
        [prediction] = seasonal_predictions(complaints, october)
        assert prediction.season == "Festival Season"
        assert prediction.increase_percentage == 50

    def test_capped_and_ordered(self):
        # June matches roads, sewage and water; all surge
        complaints = (
            self._growth("roads", 12, 6, start_id=0)
            + self._growth("sewage", 15, 5, start_id=1000)
            + self._growth("water", 12, 10, start_id=2000)
        )
        predictions = seasonal_predictions(complaints, NOW)
        assert [p.category for p in predictions] == [Category.SEWAGE, Category.ROADS, Category.WATER]
        assert len(predictions) <= DEFAULT_CONFIG.max_seasonal_predictions
