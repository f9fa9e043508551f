# grain_planner/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class GrainPlannerError(Exception):
    """Base error. `http_status` tells an outer HTTP layer how to answer."""

    http_status = 500
    title = "Internal error"

    @property
    def is_client_error(self) -> bool:
        return 400 <= int(self.http_status) < 500

    @property
    def details(self) -> List[str]:
        return [str(self)]


class InvalidRequest(GrainPlannerError):
    http_status = 400
    title = "Invalid request parameters"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid request: {', '.join(self.errors)}")

    @property
    def details(self) -> List[str]:
        return list(self.errors)


class InvalidQuarter(GrainPlannerError):
    http_status = 400
    title = "Invalid quarter"

    def __init__(self, quarter: Any):
        self.quarter = quarter
        super().__init__(f"Invalid quarter: {quarter}. Must be 1, 2, 3, or 4.")


class InvalidYear(GrainPlannerError):
    http_status = 400
    title = "Invalid year parameter"

    def __init__(self, year: Any, min_year: int, max_year: int):
        self.year = year
        super().__init__(f"Invalid year: {year}. Must be between {min_year} and {max_year}.")


class DataUnavailable(GrainPlannerError):
    http_status = 404
    title = "Weather data not available"


class InvalidWeatherData(GrainPlannerError):
    http_status = 503
    title = "Data quality issue"


class WeatherFetchError(GrainPlannerError):
    http_status = 503
    title = "Weather data unavailable"


class WeatherTimeout(WeatherFetchError):
    http_status = 504
    title = "Weather provider timeout"


class AnalysisFailed(GrainPlannerError):
    title = "Analysis failed"

    def __init__(self, cause: BaseException, step: Optional[str] = None):
        self.cause = cause
        self.step = step
        where = f" during {step}" if step else ""
        super().__init__(f"Planting analysis failed{where}: {cause}")

    @property
    def http_status(self) -> int:  # type: ignore[override]
        # upstream/data failures keep their 5xx status; anything else is 500
        if isinstance(self.cause, GrainPlannerError) and int(self.cause.http_status) >= 500:
            return int(self.cause.http_status)
        return 500


def error_payload(exc: BaseException) -> Dict[str, Any]:
    """
    JSON-safe error body for an outer HTTP layer:
      {success, error, details, status}
    """
    if isinstance(exc, AnalysisFailed) and exc.http_status != 500:
        title = exc.cause.title
        details = [str(exc)]
        status = exc.http_status
    elif isinstance(exc, GrainPlannerError):
        title = exc.title
        details = exc.details
        status = int(exc.http_status)
    else:
        title = "Internal server error"
        details = ["An unexpected error occurred during planting window analysis"]
        status = 500

    return {
        "success": False,
        "error": title,
        "details": details,
        "status": status,
    }
