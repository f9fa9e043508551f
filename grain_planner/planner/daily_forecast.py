# grain_planner/planner/daily_forecast.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

import numpy as np

from .. import config as cfg
from ..climate.observations import WeatherObservation, observations_to_frame, validate_weather_data
from ..climate.openmeteo import WeatherProvider
from ..errors import InvalidWeatherData
from ..schemas.inputs import Location
from ..schemas.outputs import RiskLevel, _to_plain

TemperatureTrend = Literal["stable", "rising", "falling"]
PrecipitationTrend = Literal["dry", "moderate", "wet"]
WindTrend = Literal["calm", "moderate", "windy"]

SCORE_FLOOR = 65
SCORE_CEIL = 92
BASELINE = 85.0


@dataclass(frozen=True)
class DaySuitability:
    score: int
    can_plant: bool
    recommendation: str
    risk_level: RiskLevel
    issues: List[str] = field(default_factory=list)
    bonuses: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlantingDayAnalysis:
    date: str
    weather: WeatherObservation
    suitability_score: int
    can_plant: bool
    recommendation: str
    risk_level: RiskLevel
    weather_summary: Dict[str, str]


@dataclass(frozen=True)
class WeatherTrends:
    temperature_trend: TemperatureTrend
    precipitation_trend: PrecipitationTrend
    wind_trend: WindTrend


@dataclass(frozen=True)
class ForecastSummary:
    total_days: int
    plantable_days: int
    best_planting_days: List[PlantingDayAnalysis]
    overall_recommendation: str
    next_update_date: str
    weather_trends: WeatherTrends


@dataclass(frozen=True)
class DailyForecastAnalysis:
    location: Location
    forecast_period: str
    daily_analysis: List[PlantingDayAnalysis]
    summary: ForecastSummary

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def planting_suitability(day: WeatherObservation, rng: Optional[np.random.Generator] = None) -> DaySuitability:
    """
    Rule-based suitability for planting on a single forecast day.

    With `rng`, three uncertainty terms (up to 8, 5 and 3 points) are drawn and
    subtracted; without it they are zero and the result is deterministic.
    """
    score = BASELINE
    issues: List[str] = []
    bonuses: List[str] = []

    if rng is not None:
        uncertainty = rng.random() * 8 + rng.random() * 5 + rng.random() * 3
    else:
        uncertainty = 0.0

    # temperature: 22-28 °C
    t = day.temperature
    if t < 20:
        score -= 25
        issues.append("Temperature too low for rice planting")
    elif t > 32:
        score -= 20
        issues.append("Temperature too high for rice planting")
    elif t < 22 or t > 28:
        score -= 8
        issues.append("Temperature outside optimal range")
    elif 24 <= t <= 26:
        score += 3
        bonuses.append("Optimal temperature range")

    # precipitation: 5-15 mm
    p = day.precipitation
    if p > 30:
        score -= 30
        issues.append("Heavy rainfall - avoid planting")
    elif p > 20:
        score -= 12
        issues.append("Moderate rainfall - monitor conditions")
    elif p < 2:
        score -= 8
        issues.append("Very dry conditions - ensure irrigation")
    elif 5 <= p <= 15:
        score += 2
        bonuses.append("Optimal moisture conditions")

    # wind: < 15 km/h
    w = day.wind_speed
    if w > 20:
        score -= 25
        issues.append("High winds - avoid planting")
    elif w > 15:
        score -= 8
        issues.append("Moderate winds - monitor conditions")
    elif w < 5:
        score += 1
        bonuses.append("Calm wind conditions")

    # humidity: 70-85 %
    h = day.humidity
    if h < 50:
        score -= 12
        issues.append("Very low humidity - ensure irrigation")
    elif h > 95:
        score -= 8
        issues.append("Very high humidity - monitor for disease")
    elif 70 <= h <= 85:
        score += 1
        bonuses.append("Optimal humidity range")

    score -= uncertainty
    final = _round_half_up(max(SCORE_FLOOR, min(SCORE_CEIL, score)))

    if final >= 88:
        text = "Excellent planting conditions"
    elif final >= 80:
        text = "Good planting conditions"
    elif final >= 75:
        text = "Moderate conditions - proceed with caution"
    elif final >= 70:
        text = "Acceptable conditions - monitor closely"
    elif final >= 50:
        text = "Poor conditions - consider postponing"
    else:
        text = "Avoid planting - adverse weather expected"

    if issues:
        text += f" ({issues[0]})"
    elif bonuses:
        text += f" ({bonuses[0]})"

    risk: RiskLevel = "low" if final >= 85 else ("medium" if final >= 75 else "high")

    return DaySuitability(
        score=final,
        can_plant=final >= 70,
        recommendation=text,
        risk_level=risk,
        issues=issues,
        bonuses=bonuses,
    )


def _trends(series: Sequence[WeatherObservation]) -> WeatherTrends:
    df = observations_to_frame(series)

    temps = df["temperature"].to_numpy(dtype=float)
    temp_trend: TemperatureTrend = "stable"
    if len(temps) >= 3:
        half = len(temps) // 2
        diff = float(temps[half:].mean() - temps[:half].mean())
        if abs(diff) >= 1:
            temp_trend = "rising" if diff > 0 else "falling"

    precip_mean = float(df["precipitation"].mean())
    if precip_mean < 5:
        precip_trend: PrecipitationTrend = "dry"
    elif precip_mean < 15:
        precip_trend = "moderate"
    else:
        precip_trend = "wet"

    wind_mean = float(df["wind_speed"].mean())
    if wind_mean < 10:
        wind_trend: WindTrend = "calm"
    elif wind_mean < 15:
        wind_trend = "moderate"
    else:
        wind_trend = "windy"

    return WeatherTrends(temperature_trend=temp_trend, precipitation_trend=precip_trend, wind_trend=wind_trend)


def _overall_message(plantable: int) -> str:
    if plantable >= 10:
        return "Excellent 16-day window with many planting opportunities"
    if plantable >= 7:
        return "Good 16-day window with several planting days available"
    if plantable >= 4:
        return "Moderate 16-day window with limited planting opportunities"
    if plantable >= 1:
        return "Poor 16-day window with very few planting days"
    return "Avoid planting in the next 16 days - adverse weather expected"


def analyze_daily_forecast(
    series: Sequence[WeatherObservation],
    location: Location,
    rng: Optional[np.random.Generator] = None,
    today: Optional[date] = None,
) -> DailyForecastAnalysis:
    if not validate_weather_data(list(series)):
        raise InvalidWeatherData("Forecast series is empty or malformed")

    days: List[PlantingDayAnalysis] = []
    for obs in series:
        s = planting_suitability(obs, rng)
        days.append(
            PlantingDayAnalysis(
                date=obs.date,
                weather=obs,
                suitability_score=s.score,
                can_plant=s.can_plant,
                recommendation=s.recommendation,
                risk_level=s.risk_level,
                weather_summary={
                    "temperature": f"{obs.temperature:.1f}°C",
                    "precipitation": f"{obs.precipitation:.1f}mm",
                    "windSpeed": f"{obs.wind_speed:.1f} km/h",
                    "humidity": f"{obs.humidity:.0f}%",
                },
            )
        )

    plantable = sum(1 for d in days if d.can_plant)
    best = sorted((d for d in days if d.suitability_score >= 75), key=lambda d: -d.suitability_score)[:3]
    next_update = (today or date.today()) + timedelta(days=7)

    return DailyForecastAnalysis(
        location=location,
        forecast_period=f"{series[0].date} to {series[-1].date}",
        daily_analysis=days,
        summary=ForecastSummary(
            total_days=len(days),
            plantable_days=plantable,
            best_planting_days=best,
            overall_recommendation=_overall_message(plantable),
            next_update_date=next_update.isoformat(),
            weather_trends=_trends(series),
        ),
    )


def analyze_forecast_for_location(
    provider: WeatherProvider,
    location: Location,
    days_ahead: int = cfg.MAX_FORECAST_DAYS,
    rng: Optional[np.random.Generator] = None,
) -> DailyForecastAnalysis:
    series = provider.fetch_forecast(location, days_ahead)
    return analyze_daily_forecast(series, location, rng=rng)
