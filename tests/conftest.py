"""
pytest configuration for the planting planner test suite

Shared fixtures: weather series, quarterly datasets and a scripted weather provider.
"""

from datetime import date, timedelta
from typing import List, Optional

import pytest

from grain_planner.climate.observations import WeatherObservation
from grain_planner.errors import WeatherFetchError
from grain_planner.schemas.inputs import Location, PlantingAnalysisRequest
from grain_planner.schemas.outputs import QuarterlyWeather
from grain_planner.yield_model.quarter_data import QuarterlyClimateDataset


# (temperature, dew_point, precipitation, wind_speed, humidity)
GOOD_WEEK = [
    (25.0, 20.0, 5.0, 8.0, 75.0),
    (26.0, 21.0, 8.0, 7.0, 78.0),
    (24.5, 19.5, 12.0, 9.0, 80.0),
    (25.5, 20.5, 3.0, 6.0, 72.0),
    (27.0, 22.0, 0.0, 10.0, 70.0),
    (26.5, 21.5, 7.0, 8.5, 76.0),
    (25.8, 20.8, 9.0, 7.5, 77.0),
]

EXTREME_WEEK = [
    (40.0, 35.0, 60.0, 35.0, 95.0),
    (15.0, 10.0, 0.0, 5.0, 35.0),
    (38.0, 33.0, 55.0, 32.0, 90.0),
    (18.0, 13.0, 2.0, 8.0, 45.0),
    (42.0, 37.0, 70.0, 40.0, 98.0),
    (16.0, 11.0, 1.0, 6.0, 40.0),
    (39.0, 34.0, 65.0, 38.0, 92.0),
]

# 2025 reference quarters (temperature, dew_point, precipitation, wind_speed, humidity)
KNOWN_QUARTERS = {
    1: (26.76, 21.58, 236.7, 3.23, 78.9),
    2: (28.68, 22.61, 337.3, 3.61, 82.8),
    3: (30.48, 23.44, 526.2, 2.77, 86.5),
    4: (27.71, 20.57, 420.7, 3.40, 80.0),
}


def make_series(start: date, rows) -> List[WeatherObservation]:
    return [
        WeatherObservation(
            date=(start + timedelta(days=i)).isoformat(),
            temperature=t,
            dew_point=d,
            precipitation=p,
            wind_speed=w,
            humidity=h,
        )
        for i, (t, d, p, w, h) in enumerate(rows)
    ]


def repeat_rows(rows, n: int):
    return [rows[i % len(rows)] for i in range(n)]


class ScriptedProvider:
    """
    WeatherProvider double. `failures` maps a year to the exception raised for it;
    every call is recorded.
    """

    def __init__(self, days: int = 30, failures=None, series: Optional[List[WeatherObservation]] = None):
        self.days = days
        self.failures = dict(failures or {})
        self.series = series
        self.quarterly_calls = []
        self.forecast_calls = []

    def fetch_quarterly_weather(self, location, year, quarter):
        self.quarterly_calls.append((location.name, year, quarter))
        if year in self.failures:
            raise self.failures[year]
        if self.series is not None:
            return list(self.series)
        start = date(year, (quarter - 1) * 3 + 1, 1)
        return make_series(start, repeat_rows(GOOD_WEEK, self.days))

    def fetch_forecast(self, location, days_ahead=16):
        self.forecast_calls.append((location.name, days_ahead))
        if self.series is not None:
            return list(self.series)
        return make_series(date(2026, 10, 19), repeat_rows(GOOD_WEEK, min(days_ahead, 16)))


@pytest.fixture
def good_week():
    return make_series(date(2025, 1, 1), GOOD_WEEK)


@pytest.fixture
def extreme_week():
    return make_series(date(2025, 1, 1), EXTREME_WEEK)


@pytest.fixture
def central_luzon():
    return Location(latitude=15.4817, longitude=120.9730, name="Central Luzon")


@pytest.fixture
def known_dataset():
    """2026 quarters set to the 2025 reference weather; Q1 is the clear MLR optimum."""
    return QuarterlyClimateDataset(
        [
            QuarterlyWeather(2026, q, t, d, p, w, h)
            for q, (t, d, p, w, h) in KNOWN_QUARTERS.items()
        ]
    )


@pytest.fixture
def synthetic_dataset():
    return QuarterlyClimateDataset.synthetic()


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def fixed_today():
    return lambda: date(2026, 10, 18)


@pytest.fixture
def request_2026(central_luzon):
    return PlantingAnalysisRequest(year=2026, location=central_luzon)


@pytest.fixture
def fetch_error():
    return WeatherFetchError("Open-Meteo API request failed: 502 Bad Gateway")
