"""
Tests for the Open-Meteo client (HTTP mocked), its response cache and the fallback-year policy
"""

import math
from datetime import date
from unittest.mock import Mock, patch

import pytest
import requests

from grain_planner.climate.cache import ResponseCache
from grain_planner.climate.observations import validate_weather_data
from grain_planner.climate.openmeteo import OpenMeteoClient, daily_frame_to_observations, parse_daily_payload
from grain_planner.climate.retry import FallbackYearPolicy
from grain_planner.errors import WeatherFetchError, WeatherTimeout


def _payload(days=3, **overrides):
    daily = {
        "time": [f"2025-01-{d:02d}" for d in range(1, days + 1)],
        "temperature_2m_max": [30.0] * days,
        "temperature_2m_min": [22.0] * days,
        "dewpoint_2m_max": [23.0] * days,
        "dewpoint_2m_min": [19.0] * days,
        "precipitation_sum": [4.5] * days,
        "windspeed_10m_max": [11.0] * days,
        "relative_humidity_2m_max": [90.0] * days,
        "relative_humidity_2m_min": [60.0] * days,
    }
    daily.update(overrides)
    return {"latitude": 15.5, "longitude": 121.0, "daily": daily}


def _response(payload):
    resp = Mock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestPayloadParsing:
    """Open-Meteo daily block -> observations"""

    def test_mean_of_max_and_min(self):
        obs = daily_frame_to_observations(parse_daily_payload(_payload()))
        assert len(obs) == 3
        first = obs[0]
        assert first.date == "2025-01-01"
        assert first.temperature == pytest.approx(26.0)
        assert first.dew_point == pytest.approx(21.0)
        assert first.humidity == pytest.approx(75.0)
        assert first.precipitation == pytest.approx(4.5)
        assert first.wind_speed == pytest.approx(11.0)
        assert validate_weather_data(obs)

    def test_sorted_by_date(self):
        payload = _payload(time=["2025-01-03", "2025-01-01", "2025-01-02"])
        obs = daily_frame_to_observations(parse_daily_payload(payload))
        assert [o.date for o in obs] == ["2025-01-01", "2025-01-02", "2025-01-03"]

    def test_missing_values_stay_nan(self):
        payload = _payload(precipitation_sum=[1.0, None, 2.0])
        obs = daily_frame_to_observations(parse_daily_payload(payload))
        assert math.isnan(obs[1].precipitation)
        assert not validate_weather_data(obs)

    def test_missing_variable(self):
        payload = _payload()
        del payload["daily"]["windspeed_10m_max"]
        obs = daily_frame_to_observations(parse_daily_payload(payload))
        assert all(math.isnan(o.wind_speed) for o in obs)

    def test_empty_payload(self):
        assert parse_daily_payload({}).empty
        assert daily_frame_to_observations(parse_daily_payload({"daily": {}})) == []


class TestOpenMeteoClient:
    """HTTP behaviour of OpenMeteoClient"""

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_quarterly_request(self, mock_get, central_luzon):
        mock_get.return_value = _response(_payload())
        obs = OpenMeteoClient().fetch_quarterly_weather(central_luzon, 2024, 1)

        assert len(obs) == 3
        args, kwargs = mock_get.call_args
        assert args[0] == "https://archive-api.open-meteo.com/v1/archive"
        assert kwargs["params"]["start_date"] == "2024-01-01"
        assert kwargs["params"]["end_date"] == "2024-03-31"
        assert kwargs["params"]["latitude"] == 15.4817
        assert "relative_humidity_2m_min" in kwargs["params"]["daily"]
        assert kwargs["timeout"] == 30.0

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_forecast_caps_days(self, mock_get, central_luzon):
        mock_get.return_value = _response(_payload())
        OpenMeteoClient().fetch_forecast(central_luzon, 30)
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.open-meteo.com/v1/forecast"
        assert kwargs["params"]["forecast_days"] == 16

    def test_bad_arguments(self):
        client = OpenMeteoClient()
        with pytest.raises(ValueError):
            client.fetch_daily_forecast(15.0, 121.0, 0)
        with pytest.raises(ValueError):
            client.fetch_daily_history(15.0, 121.0, date(2025, 2, 1), date(2025, 1, 1))

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_timeout(self, mock_get, central_luzon):
        mock_get.side_effect = requests.Timeout("read timed out")
        with pytest.raises(WeatherTimeout, match="not responding"):
            OpenMeteoClient().fetch_quarterly_weather(central_luzon, 2024, 2)

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_http_error(self, mock_get, central_luzon):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("502 Server Error")
        mock_get.return_value = resp
        with pytest.raises(WeatherFetchError, match="request failed") as exc:
            OpenMeteoClient().fetch_quarterly_weather(central_luzon, 2024, 2)
        assert not isinstance(exc.value, WeatherTimeout)

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_invalid_json(self, mock_get, central_luzon):
        resp = _response(None)
        resp.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = resp
        with pytest.raises(WeatherFetchError):
            OpenMeteoClient().fetch_forecast(central_luzon)

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_error_payload(self, mock_get, central_luzon):
        mock_get.return_value = _response({"error": True, "reason": "Latitude must be in range"})
        with pytest.raises(WeatherFetchError, match="Open-Meteo API Error: Latitude must be in range"):
            OpenMeteoClient().fetch_forecast(central_luzon)

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_cache_hit(self, mock_get, central_luzon):
        mock_get.return_value = _response(_payload())
        cache = ResponseCache()
        client = OpenMeteoClient(cache=cache)

        first = client.fetch_quarterly_weather(central_luzon, 2024, 3)
        second = client.fetch_quarterly_weather(central_luzon, 2024, 3)

        assert first == second
        assert mock_get.call_count == 1
        assert len(cache) == 1

    @patch("grain_planner.climate.openmeteo.requests.get")
    def test_errors_are_not_cached(self, mock_get, central_luzon):
        mock_get.return_value = _response({"error": True, "reason": "boom"})
        cache = ResponseCache()
        with pytest.raises(WeatherFetchError):
            OpenMeteoClient(cache=cache).fetch_forecast(central_luzon)
        assert len(cache) == 0


class TestResponseCache:
    """TTL and size limits"""

    def test_expiry(self):
        clock = FakeClock()
        cache = ResponseCache(ttl_s=60, clock=clock)
        cache.set("a", {"x": 1})
        clock.now += 59
        assert cache.get("a") == {"x": 1}
        clock.now += 1
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_eviction_drops_oldest(self):
        cache = ResponseCache(max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.stats()["entries"] == ["b", "c"]

    def test_clear_expired(self):
        clock = FakeClock()
        cache = ResponseCache(ttl_s=10, clock=clock)
        cache.set("old", 1)
        clock.now += 5
        cache.set("new", 2)
        clock.now += 6
        assert cache.clear_expired() == 1
        assert cache.get("new") == 2

    @pytest.mark.parametrize("kwargs", [{"ttl_s": 0}, {"max_entries": 0}])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            ResponseCache(**kwargs)


class TestFallbackYearPolicy:
    """Reference year, then one year earlier"""

    def test_years(self):
        assert FallbackYearPolicy().years(2025) == [2025, 2024]
        assert FallbackYearPolicy(max_attempts=1).years(2025) == [2025]
        assert FallbackYearPolicy(max_attempts=3, year_offsets=(1, 2)).years(2025) == [2025, 2024, 2023]

    def test_first_year_succeeds(self):
        fetch = Mock(return_value="data")
        assert FallbackYearPolicy().run(fetch, 2025) == ("data", 2025)
        fetch.assert_called_once_with(2025)

    def test_fallback_year(self, fetch_error):
        fetch = Mock(side_effect=[fetch_error, "older"])
        assert FallbackYearPolicy().run(fetch, 2025) == ("older", 2024)

    def test_reraises_last_error(self):
        errors = [WeatherFetchError("first"), WeatherTimeout("second")]
        with pytest.raises(WeatherTimeout, match="second"):
            FallbackYearPolicy().run(Mock(side_effect=errors), 2025)

    def test_other_errors_propagate_at_once(self):
        fetch = Mock(side_effect=KeyError("daily"))
        with pytest.raises(KeyError):
            FallbackYearPolicy().run(fetch, 2025)
        assert fetch.call_count == 1
