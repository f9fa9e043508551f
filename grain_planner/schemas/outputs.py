# grain_planner/schemas/outputs.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple

import numpy as np

from ..climate.observations import WeatherObservation
from .inputs import Location

RiskLevel = Literal["low", "medium", "high"]
DataQuality = Literal["excellent", "good", "fair", "poor"]
WeatherSource = Literal["historical", "forecast"]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def _to_plain(obj: Any) -> Any:
    """
    Dataclasses/numpy/containers -> JSON-safe structures.
    Dataclass field names become camelCase keys.
    """
    if obj is None:
        return None

    if is_dataclass(obj) and not isinstance(obj, type):
        return {_camel(f.name): _to_plain(getattr(obj, f.name)) for f in fields(obj)}

    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [_to_plain(v) for v in obj]

    if isinstance(obj, np.generic):
        return obj.item()

    if isinstance(obj, (str, int, float, bool)):
        return obj

    return str(obj)


# =============================================================================
# QUARTER SELECTION
# =============================================================================
@dataclass(frozen=True)
class QuarterlyWeather:
    """Quarter-representative weather aggregate fed to the MLR formulas."""

    year: int
    quarter: int
    temperature: float  # °C
    dew_point: float  # °C
    precipitation: float  # mm over the quarter
    wind_speed: float  # km/h
    humidity: float  # %
    location: str = "Philippines"


@dataclass(frozen=True)
class QuarterYieldEstimate:
    quarter: int
    predicted_yield: float  # kg/ha, may be negative
    confidence: float  # 0-100
    weather_data: QuarterlyWeather
    quarter_name: str
    quarter_months: Tuple[str, str]


@dataclass(frozen=True)
class QuarterSelectionResult:
    year: int
    analysis_date: str
    quarters: List[QuarterYieldEstimate]
    optimal_quarter: int
    overall_confidence: float
    recommendations: List[str] = field(default_factory=list)

    def estimate(self, quarter: int) -> QuarterYieldEstimate:
        for q in self.quarters:
            if q.quarter == quarter:
                return q
        raise KeyError(quarter)

    @property
    def optimal(self) -> QuarterYieldEstimate:
        return self.estimate(self.optimal_quarter)

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


# =============================================================================
# WINDOW SCORING
# =============================================================================
@dataclass(frozen=True)
class StabilityFactors:
    temperature_variance: float
    precipitation_total: float
    precipitation_days: int
    wind_variance: float
    humidity_variance: float
    extreme_events: int


@dataclass(frozen=True)
class WeatherStabilityScore:
    overall_score: float
    temperature_stability: float
    precipitation_score: float
    wind_stability: float
    humidity_stability: float
    factors: StabilityFactors
    recommendations: List[str]
    risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


@dataclass(frozen=True)
class PlantingWindow:
    start_date: str
    end_date: str
    score: WeatherStabilityScore
    weather_data: List[WeatherObservation]
    confidence: float  # 0-100

    @property
    def period(self) -> str:
        return f"{self.start_date} to {self.end_date}"

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


@dataclass(frozen=True)
class PlantingWindowAnalysis:
    location: Location
    year: int
    quarter: int
    windows: List[PlantingWindow]
    optimal_window: Optional[PlantingWindow]
    analysis_date: str
    data_quality: DataQuality

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


# =============================================================================
# INTEGRATED ANALYSIS
# =============================================================================
@dataclass(frozen=True)
class Recommendation:
    planting_period: str
    quarter_reason: str
    window_reason: str
    risk_level: RiskLevel
    action_items: List[str]


@dataclass(frozen=True)
class DataQualityReport:
    quarter_data: DataQuality
    weather_data: DataQuality
    overall: DataQuality


@dataclass(frozen=True)
class AlternativeQuarter:
    quarter: int
    predicted_yield: float
    confidence: float


@dataclass(frozen=True)
class FallbackOptions:
    alternative_quarters: List[AlternativeQuarter] = field(default_factory=list)
    alternative_windows: List[PlantingWindow] = field(default_factory=list)


@dataclass(frozen=True)
class IntegratedPlantingAnalysis:
    quarter_selection: QuarterSelectionResult
    optimal_quarter: int
    quarter_confidence: float
    window_analysis: Optional[PlantingWindowAnalysis]
    optimal_window: Optional[PlantingWindow]
    window_confidence: float
    overall_confidence: float
    recommendation: Recommendation
    location: Location
    year: int
    analysis_date: str
    data_quality: DataQualityReport
    weather_source: WeatherSource = "historical"
    reference_year: Optional[int] = None
    fallback_options: Optional[FallbackOptions] = None

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)
