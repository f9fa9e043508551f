# grain_planner/climate/openmeteo.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

import pandas as pd
import requests

from .. import config as cfg
from ..errors import WeatherFetchError, WeatherTimeout
from ..schemas.inputs import Location
from .cache import ResponseCache
from .observations import WeatherObservation, frame_to_observations
from .quarters import quarter_date_range

logger = logging.getLogger(__name__)

DAILY_VARS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "dewpoint_2m_max",
    "dewpoint_2m_min",
    "precipitation_sum",
    "windspeed_10m_max",
    "relative_humidity_2m_max",
    "relative_humidity_2m_min",
]

# Open-Meteo daily var -> standard column
_COLUMNS = {
    "temperature_2m_max": "om_tmax_c",
    "temperature_2m_min": "om_tmin_c",
    "dewpoint_2m_max": "om_dew_max_c",
    "dewpoint_2m_min": "om_dew_min_c",
    "precipitation_sum": "om_prcp_mm",
    "windspeed_10m_max": "om_wind_kmh",
    "relative_humidity_2m_max": "om_rh_max",
    "relative_humidity_2m_min": "om_rh_min",
}


class WeatherProvider(Protocol):
    def fetch_quarterly_weather(self, location: Location, year: int, quarter: int) -> List[WeatherObservation]:
        ...

    def fetch_forecast(self, location: Location, days_ahead: int = cfg.MAX_FORECAST_DAYS) -> List[WeatherObservation]:
        ...


def _empty_daily_frame() -> pd.DataFrame:
    return pd.DataFrame(columns=["ds", *_COLUMNS.values()])


def parse_daily_payload(data: Dict[str, Any]) -> pd.DataFrame:
    """
    Open-Meteo `daily` block -> DataFrame with standard columns:

    - ds (datetime)
    - om_tmax_c, om_tmin_c
    - om_dew_max_c, om_dew_min_c
    - om_prcp_mm
    - om_wind_kmh
    - om_rh_max, om_rh_min

    Missing values stay NaN so the series validation can reject them.
    """
    daily = data.get("daily") or {}
    if not daily:
        return _empty_daily_frame()

    df = pd.DataFrame({"ds": daily.get("time", [])})
    n = len(df)
    for var, col in _COLUMNS.items():
        values = daily.get(var)
        if values is None or len(values) != n:
            values = [None] * n
        df[col] = values

    if df.empty:
        return df

    df["ds"] = pd.to_datetime(df["ds"])
    for c in _COLUMNS.values():
        df[c] = pd.to_numeric(df[c], errors="coerce")

    return df.sort_values("ds").reset_index(drop=True)


def daily_frame_to_observations(df: pd.DataFrame) -> List[WeatherObservation]:
    """Temperature, dew point and humidity are the mean of daily max and min."""
    if df is None or df.empty:
        return []

    std = pd.DataFrame(
        {
            "ds": df["ds"],
            "temperature": (df["om_tmax_c"] + df["om_tmin_c"]) / 2.0,
            "dew_point": (df["om_dew_max_c"] + df["om_dew_min_c"]) / 2.0,
            "precipitation": df["om_prcp_mm"],
            "wind_speed": df["om_wind_kmh"],
            "humidity": (df["om_rh_max"] + df["om_rh_min"]) / 2.0,
        }
    )
    return frame_to_observations(std)


class OpenMeteoClient:
    """
    Daily weather from Open-Meteo (archive + forecast).

    `cache` is optional and owned by the caller.
    """

    def __init__(
        self,
        cache: Optional[ResponseCache] = None,
        timeout_s: float = cfg.HTTP_TIMEOUT_S,
        timezone: str = "auto",
        forecast_url: str = cfg.OPENMETEO_FORECAST_URL,
        archive_url: str = cfg.OPENMETEO_ARCHIVE_URL,
    ):
        self.cache = cache
        self.timeout_s = float(timeout_s)
        self.timezone = timezone
        self.forecast_url = forecast_url
        self.archive_url = archive_url

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        cache_key = url + "?" + "&".join(f"{k}={params[k]}" for k in sorted(params))
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            resp = requests.get(
                url,
                params=params,
                timeout=self.timeout_s,
                headers={"Accept": "application/json", "User-Agent": cfg.USER_AGENT},
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as e:
            raise WeatherTimeout("Request timeout - Open-Meteo API is not responding") from e
        except requests.RequestException as e:
            raise WeatherFetchError(f"Open-Meteo API request failed: {e}") from e
        except ValueError as e:
            raise WeatherFetchError(f"Open-Meteo returned invalid JSON: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise WeatherFetchError(f"Open-Meteo API Error: {data.get('reason') or 'Unknown error'}")

        if self.cache is not None:
            self.cache.set(cache_key, data)
        return data

    # ------------------------------------------------------------------
    # DataFrame API
    # ------------------------------------------------------------------
    def fetch_daily_history(self, lat: float, lon: float, start_date: date, end_date: date) -> pd.DataFrame:
        if end_date < start_date:
            raise ValueError("end_date must be >= start_date")

        params = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "daily": ",".join(DAILY_VARS),
            "timezone": self.timezone,
        }
        logger.info("[Weather] archive %s -> %s at (%.4f, %.4f)", start_date, end_date, lat, lon)
        return parse_daily_payload(self._get_json(self.archive_url, params))

    def fetch_daily_forecast(self, lat: float, lon: float, days: int = cfg.MAX_FORECAST_DAYS) -> pd.DataFrame:
        if days <= 0:
            raise ValueError("days must be > 0")
        if days > cfg.MAX_FORECAST_DAYS:
            days = cfg.MAX_FORECAST_DAYS

        params = {
            "latitude": lat,
            "longitude": lon,
            "forecast_days": days,
            "daily": ",".join(DAILY_VARS),
            "timezone": self.timezone,
        }
        logger.info("[Weather] %s-day forecast at (%.4f, %.4f)", days, lat, lon)
        return parse_daily_payload(self._get_json(self.forecast_url, params))

    # ------------------------------------------------------------------
    # WeatherProvider
    # ------------------------------------------------------------------
    def fetch_quarterly_weather(self, location: Location, year: int, quarter: int) -> List[WeatherObservation]:
        start, end = quarter_date_range(year, quarter)
        df = self.fetch_daily_history(location.latitude, location.longitude, start, end)
        return daily_frame_to_observations(df)

    def fetch_forecast(self, location: Location, days_ahead: int = cfg.MAX_FORECAST_DAYS) -> List[WeatherObservation]:
        df = self.fetch_daily_forecast(location.latitude, location.longitude, days_ahead)
        return daily_frame_to_observations(df)
