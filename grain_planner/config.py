# grain_planner/config.py

import os
from pathlib import Path
from typing import Dict

# =============================================================================
# PATHS
# =============================================================================
BASE_DIR = Path(__file__).resolve().parent
YIELD_DATA_DIR = BASE_DIR / "yield_model" / "data"
PLANNER_DATA_DIR = BASE_DIR / "planner" / "data"

QUARTERLY_FORMULAS_JSON = YIELD_DATA_DIR / "quarterly_formulas.json"
REGIONS_JSON = PLANNER_DATA_DIR / "regions_v1.json"

# optional CSV of quarter averages (year, quarter, temperature, ...)
QUARTERLY_WEATHER_CSV = os.getenv("GRAIN_PLANNER_QUARTERLY_CSV") or None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be numeric, got {raw!r}")


# =============================================================================
# SUPPORTED YEARS (2025-2100 series)
# =============================================================================
MIN_YEAR = 2025
MAX_YEAR = 2100

# =============================================================================
# MLR MODEL
# =============================================================================
MLR_STATED_ACCURACY = 96.01
QUARTER_BASE_CONFIDENCE = 85.0
QUARTER_CONFIDENCE_ADJUSTMENTS: Dict[int, float] = {1: 0.0, 2: 2.0, 3: -2.0, 4: 1.0}

# =============================================================================
# PLANTING WINDOWS
# =============================================================================
WINDOW_DAYS = 7
WINDOW_MIN_CONFIDENCE = 70.0

QUARTER_CONFIDENCE_WEIGHT = 0.7
WINDOW_CONFIDENCE_WEIGHT = 0.3

MAX_ALTERNATIVE_QUARTERS = 2
MAX_ALTERNATIVE_WINDOWS = 3

# =============================================================================
# WEATHER / HTTP
# =============================================================================
OPENMETEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
OPENMETEO_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
MAX_FORECAST_DAYS = 16

HTTP_TIMEOUT_S = _env_float("GRAIN_PLANNER_HTTP_TIMEOUT", 30.0)
CACHE_TTL_S = _env_float("GRAIN_PLANNER_CACHE_TTL", 3600.0)
CACHE_MAX_ENTRIES = 256

USER_AGENT = "GR-AI-N-Planner/1.0"

# used when the caller gives neither coordinates nor a region
DEFAULT_REGION = "Central Luzon"
