"""
Tests for the per-day planting suitability over a 16-day forecast
"""

from datetime import date

import numpy as np
import pytest

from grain_planner.climate.observations import WeatherObservation
from grain_planner.errors import InvalidWeatherData
from grain_planner.planner.daily_forecast import (
    analyze_daily_forecast,
    analyze_forecast_for_location,
    planting_suitability,
)

from conftest import GOOD_WEEK, ScriptedProvider, make_series, repeat_rows

IDEAL_DAY = WeatherObservation("2026-10-19", 25.0, 20.0, 10.0, 3.0, 75.0)
COLD_STORMY_DAY = WeatherObservation("2026-10-20", 15.0, 10.0, 40.0, 25.0, 45.0)
WET_DAY = WeatherObservation("2026-10-21", 27.0, 21.0, 25.0, 10.0, 88.0)


class TestPlantingSuitability:
    """Rule-based single-day score"""

    def test_ideal_day(self):
        s = planting_suitability(IDEAL_DAY)
        assert s.score == 92
        assert s.can_plant is True
        assert s.risk_level == "low"
        assert s.recommendation == "Excellent planting conditions (Optimal temperature range)"
        assert len(s.bonuses) == 4
        assert s.issues == []

    def test_floor(self):
        s = planting_suitability(COLD_STORMY_DAY)
        assert s.score == 65
        assert s.can_plant is False
        assert s.risk_level == "high"
        assert s.recommendation == "Poor conditions - consider postponing (Temperature too low for rice planting)"
        assert len(s.issues) == 4

    def test_acceptable_day(self):
        s = planting_suitability(WET_DAY)
        assert s.score == 73
        assert s.can_plant is True
        assert s.risk_level == "high"
        assert s.recommendation.startswith("Acceptable conditions - monitor closely (Moderate rainfall")

    def test_deterministic_without_rng(self):
        assert planting_suitability(WET_DAY) == planting_suitability(WET_DAY)

    @pytest.mark.parametrize("seed", [0, 1, 42, 2025])
    def test_uncertainty_only_lowers_score(self, seed):
        baseline = planting_suitability(IDEAL_DAY).score
        s = planting_suitability(IDEAL_DAY, np.random.default_rng(seed))
        assert 65 <= s.score <= baseline
        assert s.score >= baseline - 16

    def test_seeded_rng_repeats(self):
        a = planting_suitability(WET_DAY, np.random.default_rng(7))
        b = planting_suitability(WET_DAY, np.random.default_rng(7))
        assert a == b


class TestDailyForecast:
    """16-day analysis and summary"""

    @pytest.fixture
    def forecast(self):
        return make_series(date(2026, 10, 19), repeat_rows(GOOD_WEEK, 16))

    def test_summary(self, forecast, central_luzon):
        result = analyze_daily_forecast(forecast, central_luzon, today=date(2026, 10, 18))
        summary = result.summary
        assert result.forecast_period == "2026-10-19 to 2026-11-03"
        assert summary.total_days == 16
        assert summary.plantable_days == 16
        assert summary.overall_recommendation == "Excellent 16-day window with many planting opportunities"
        assert summary.next_update_date == "2026-10-25"

    def test_best_days(self, forecast, central_luzon):
        best = analyze_daily_forecast(forecast, central_luzon).summary.best_planting_days
        assert [d.date for d in best] == ["2026-10-19", "2026-10-20", "2026-10-21"]
        assert all(d.suitability_score == 91 for d in best)

    def test_trends(self, forecast, central_luzon):
        trends = analyze_daily_forecast(forecast, central_luzon).summary.weather_trends
        assert trends.temperature_trend == "stable"
        assert trends.precipitation_trend == "moderate"
        assert trends.wind_trend == "calm"

    def test_rising_temperature(self, central_luzon):
        rows = [(20.0 + i, 18.0, 8.0, 6.0, 75.0) for i in range(8)]
        result = analyze_daily_forecast(make_series(date(2026, 10, 19), rows), central_luzon)
        assert result.summary.weather_trends.temperature_trend == "rising"

    def test_no_plantable_days(self, central_luzon):
        series = [COLD_STORMY_DAY] * 5
        summary = analyze_daily_forecast(series, central_luzon).summary
        assert summary.plantable_days == 0
        assert summary.best_planting_days == []
        assert summary.overall_recommendation == "Avoid planting in the next 16 days - adverse weather expected"

    def test_empty_series(self, central_luzon):
        with pytest.raises(InvalidWeatherData):
            analyze_daily_forecast([], central_luzon)

    def test_to_dict(self, forecast, central_luzon):
        payload = analyze_daily_forecast(forecast, central_luzon, today=date(2026, 10, 18)).to_dict()
        assert payload["summary"]["nextUpdateDate"] == "2026-10-25"
        day = payload["dailyAnalysis"][0]
        assert day["suitabilityScore"] == 91
        assert day["weatherSummary"]["temperature"] == "25.0°C"
        assert day["weatherSummary"]["windSpeed"] == "8.0 km/h"

    def test_for_location(self, central_luzon):
        provider = ScriptedProvider()
        result = analyze_forecast_for_location(provider, central_luzon)
        assert provider.forecast_calls == [("Central Luzon", 16)]
        assert result.summary.total_days == 16
