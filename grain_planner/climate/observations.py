# grain_planner/climate/observations.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

NUMERIC_FIELDS = ("temperature", "dew_point", "precipitation", "wind_speed", "humidity")

# camelCase keys of the JSON shape -> dataclass fields
_JSON_KEYS = {
    "date": "date",
    "temperature": "temperature",
    "dewPoint": "dew_point",
    "dew_point": "dew_point",
    "precipitation": "precipitation",
    "windSpeed": "wind_speed",
    "wind_speed": "wind_speed",
    "humidity": "humidity",
}


@dataclass(frozen=True)
class WeatherObservation:
    date: str  # YYYY-MM-DD
    temperature: float  # °C
    dew_point: float  # °C
    precipitation: float  # mm/day
    wind_speed: float  # km/h
    humidity: float  # %

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "WeatherObservation":
        kwargs = {}
        for key, value in raw.items():
            field_name = _JSON_KEYS.get(key)
            if field_name:
                kwargs[field_name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "temperature": self.temperature,
            "dewPoint": self.dew_point,
            "precipitation": self.precipitation,
            "windSpeed": self.wind_speed,
            "humidity": self.humidity,
        }


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(float(value))


def validate_weather_data(data: Sequence[Any]) -> bool:
    """
    Structural check of a daily series: non-empty, every record has a date and
    the five numeric fields.
    """
    if not isinstance(data, (list, tuple)) or len(data) == 0:
        return False

    for point in data:
        if not getattr(point, "date", None):
            return False
        for name in NUMERIC_FIELDS:
            if not _is_number(getattr(point, name, None)):
                return False
    return True


def observations_to_frame(observations: Iterable[WeatherObservation]) -> pd.DataFrame:
    rows = [
        {
            "ds": o.date,
            "temperature": o.temperature,
            "dew_point": o.dew_point,
            "precipitation": o.precipitation,
            "wind_speed": o.wind_speed,
            "humidity": o.humidity,
        }
        for o in observations
    ]
    df = pd.DataFrame(rows, columns=["ds", *NUMERIC_FIELDS])
    if not df.empty:
        df["ds"] = pd.to_datetime(df["ds"])
    return df


def frame_to_observations(df: pd.DataFrame) -> List[WeatherObservation]:
    """
    Expects the standard columns:
      ds, temperature, dew_point, precipitation, wind_speed, humidity
    """
    if df is None or df.empty:
        return []

    d = df.sort_values("ds").reset_index(drop=True)
    dates = pd.to_datetime(d["ds"]).dt.strftime("%Y-%m-%d")

    out: List[WeatherObservation] = []
    for i, row in d.iterrows():
        out.append(
            WeatherObservation(
                date=str(dates.iloc[i]),
                temperature=float(row["temperature"]),
                dew_point=float(row["dew_point"]),
                precipitation=float(row["precipitation"]),
                wind_speed=float(row["wind_speed"]),
                humidity=float(row["humidity"]),
            )
        )
    return out
